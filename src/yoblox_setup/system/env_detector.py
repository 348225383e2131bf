"""Environment detection for the setup wizard.

Detects installed toolchain commands (code, git, rustc, cargo, rojo) with
version information, installed VS Code extensions and Roblox Studio. Uses
shutil.which() for cross-platform PATH detection and subprocess for version
checking with timeout protection.
"""

import glob
import logging
import os
import re
import shutil
import subprocess
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from yoblox_setup.config import ROBLOX_STUDIO_GLOBS
from yoblox_setup.system.platform_info import is_windows

logger = logging.getLogger(__name__)

# Toolchain commands the wizard knows about
SUPPORTED_TOOLS = ["code", "git", "rustc", "cargo", "rojo"]

# Version check timeout (seconds)
VERSION_CHECK_TIMEOUT = 5.0


@dataclass(frozen=True)
class ToolInfo:
    """Information about a detected command.

    Attributes:
        name: Command name (git, cargo, rojo, ...)
        found: Whether the command exists in PATH
        path: Absolute path to the executable (None if not found)
        version: Version string (None if not found or parse failed)
        check_time_ms: Time taken to detect
    """

    name: str
    found: bool
    path: Optional[str]
    version: Optional[str]
    check_time_ms: float


@dataclass(frozen=True)
class DetectionResult:
    """Result of environment detection.

    Attributes:
        tools: Dict mapping command name to ToolInfo
        total_found: Count of found commands
        total_checked: Count of commands checked
        detection_time_ms: Total time for all checks
    """

    tools: dict[str, ToolInfo]
    total_found: int
    total_checked: int
    detection_time_ms: float


@dataclass(frozen=True)
class StudioInstall:
    """Roblox Studio installation.

    Attributes:
        found: Whether Studio was found
        path: Most recently modified RobloxStudioBeta.exe (None if not found)
        version: Version folder name, e.g. "version-b0be9ce0740f40b4"
        all_versions: Number of installed versions found
        reason: Why Studio was not found, when known
    """

    found: bool
    path: Optional[str] = None
    version: Optional[str] = None
    all_versions: int = 0
    reason: Optional[str] = None


def detect_tools(tool_names: Optional[list[str]] = None) -> DetectionResult:
    """Detect which toolchain commands are available.

    Args:
        tool_names: Commands to check (defaults to SUPPORTED_TOOLS)

    Returns:
        DetectionResult with availability and versions

    Example:
        >>> result = detect_tools(["git"])
        >>> if result.tools["git"].found:
        ...     print(f"git {result.tools['git'].version}")
    """
    start_time = time.perf_counter()

    if tool_names is None:
        tool_names = SUPPORTED_TOOLS.copy()

    for name in tool_names:
        if name not in SUPPORTED_TOOLS:
            logger.debug(f"Detecting non-standard tool: {name}")

    tools: dict[str, ToolInfo] = {}

    if tool_names:
        with ThreadPoolExecutor(max_workers=len(tool_names)) as executor:
            futures = {executor.submit(_detect_single_tool, name): name for name in tool_names}

            for future in as_completed(futures):
                tool_info = future.result()
                tools[tool_info.name] = tool_info

    detection_time_ms = (time.perf_counter() - start_time) * 1000

    return DetectionResult(
        tools=tools,
        total_found=sum(1 for tool in tools.values() if tool.found),
        total_checked=len(tools),
        detection_time_ms=detection_time_ms,
    )


def detect_tool(tool_name: str) -> ToolInfo:
    """Detect a single command."""
    return _detect_single_tool(tool_name)


def _detect_single_tool(tool_name: str) -> ToolInfo:
    start_time = time.perf_counter()

    try:
        tool_path = shutil.which(tool_name)

        if tool_path is None:
            return ToolInfo(
                name=tool_name,
                found=False,
                path=None,
                version=None,
                check_time_ms=(time.perf_counter() - start_time) * 1000,
            )

        version = get_tool_version(tool_name, tool_path)

        logger.debug(f"Found {tool_name} at {tool_path}" + (f" (version {version})" if version else " (version unknown)"))

        return ToolInfo(
            name=tool_name,
            found=True,
            path=tool_path,
            version=version,
            check_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    except Exception as e:
        # Detection must never take the wizard down: report the tool as missing
        logger.warning(f"Error detecting {tool_name}: {e}")
        return ToolInfo(
            name=tool_name,
            found=False,
            path=None,
            version=None,
            check_time_ms=(time.perf_counter() - start_time) * 1000,
        )


def get_tool_version(tool_name: str, tool_path: str) -> Optional[str]:
    """Get version string for a command.

    Args:
        tool_name: Command name (for log messages)
        tool_path: Path to the executable

    Returns:
        Version string (e.g., "7.4.1") or None if failed

    Notes:
        - Runs `{tool} --version` with a timeout
        - Returns None on timeout, error, or parse failure
    """
    try:
        result = subprocess.run(
            [tool_path, "--version"],
            capture_output=True,
            text=True,
            timeout=VERSION_CHECK_TIMEOUT,
            check=False,
        )

        if result.returncode != 0:
            logger.debug(f"{tool_name} --version returned non-zero exit: {result.returncode}")
            return None

        output = result.stdout.strip()
        version = _parse_version_string(output)

        if version is None:
            logger.debug(f"Could not parse version from {tool_name} output: {output}")

        return version

    except subprocess.TimeoutExpired:
        logger.warning(f"{tool_name} --version timed out after {VERSION_CHECK_TIMEOUT}s")
        return None
    except OSError as e:
        logger.warning(f"Error getting {tool_name} version: {e}")
        return None


def _parse_version_string(output: str) -> Optional[str]:
    """Parse version string from command output.

    Examples:
        git: "git version 2.43.0.windows.1" -> "2.43.0.windows.1"
        cargo: "cargo 1.75.0 (1d8b05cdd 2023-11-20)" -> "1.75.0"
        rojo: "Rojo 7.4.1" -> "7.4.1"
        code: "1.85.1\\n0ee08df0...\\nx64" -> "1.85.1"
    """
    if not output:
        return None

    match = re.search(r"(\d+\.\d+\.\d+(?:[.-][^\s()]+)?)", output)
    if match:
        return match.group(1)

    match = re.search(r"(\d+\.\d+)", output.split("\n")[0])
    if match:
        return match.group(1)

    return None


def list_vscode_extensions() -> Optional[set[str]]:
    """Return installed VS Code extension IDs (lower-cased).

    Returns:
        Set of IDs, or None if the ``code`` CLI is unavailable or fails
    """
    code_path = shutil.which("code")
    if code_path is None:
        return None

    try:
        result = subprocess.run(
            [code_path, "--list-extensions"],
            capture_output=True,
            text=True,
            timeout=30,
            check=False,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning(f"Could not list VS Code extensions: {e}")
        return None

    if result.returncode != 0:
        return None

    return {line.strip().lower() for line in result.stdout.splitlines() if line.strip()}


def find_roblox_studio() -> StudioInstall:
    """Locate Roblox Studio (Windows only).

    When several versions are installed the most recently modified one wins.
    """
    if not is_windows():
        return StudioInstall(found=False, reason="Roblox Studio is only available on Windows")

    for pattern in _studio_globs():
        matches = glob.glob(pattern)
        if matches:
            most_recent = max(matches, key=_mtime)
            return StudioInstall(
                found=True,
                path=most_recent,
                version=_studio_version(most_recent),
                all_versions=len(matches),
            )

    return StudioInstall(found=False)


def _studio_globs() -> list[str]:
    patterns = list(ROBLOX_STUDIO_GLOBS)
    if local := os.environ.get("LOCALAPPDATA"):
        patterns.insert(0, str(Path(local) / "Roblox" / "Versions" / "*" / "RobloxStudioBeta.exe"))
    return patterns


def _mtime(path: str) -> float:
    try:
        return os.path.getmtime(path)
    except OSError:
        return 0.0


def _studio_version(path: str) -> Optional[str]:
    """Extract the version folder from a Studio path.

    Examples:
        >>> _studio_version("C:/Roblox/Versions/version-b0be9ce0740f40b4/RobloxStudioBeta.exe")
        'version-b0be9ce0740f40b4'
    """
    match = re.search(r"version-[a-f0-9]+", path, re.IGNORECASE)
    return match.group(0) if match else None
