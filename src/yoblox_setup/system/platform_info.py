"""Platform information: OS, shell, architecture, privileges."""

import os
import platform
import subprocess
import sys


def get_os() -> str:
    """Return "windows", "macos", "linux" or the raw ``sys.platform``."""
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def is_windows() -> bool:
    return get_os() == "windows"


def get_shell() -> str:
    """Best-effort name of the user's shell."""
    shell = os.environ.get("SHELL", "").lower()
    for name in ("bash", "zsh", "fish"):
        if name in shell:
            return name

    if is_windows():
        return "powershell" if os.environ.get("PSModulePath") else "cmd"

    return "unknown"


def get_arch() -> str:
    return platform.machine() or "unknown"


def get_python_version() -> str:
    return platform.python_version()


def is_admin() -> bool:
    """Return True when running elevated on Windows. Always False elsewhere."""
    if not is_windows():
        return False

    try:
        result = subprocess.run(["net", "session"], capture_output=True, timeout=10, check=False)
    except (OSError, subprocess.TimeoutExpired):
        return False
    return result.returncode == 0
