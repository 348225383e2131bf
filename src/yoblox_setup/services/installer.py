"""Installer actions.

Downloading files, running install commands, opening URLs and unpacking the
project template. Failures are reported through return values; callers
decide whether to retry.
"""

import logging
import shutil
import subprocess
import sys
import webbrowser
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn, TransferSpeedColumn

from yoblox_setup.services import console as ui

logger = logging.getLogger(__name__)

# Timeout for install commands (seconds)
COMMAND_TIMEOUT = 600.0

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 300.0


@dataclass(frozen=True)
class CommandResult:
    """Result of an install command.

    Attributes:
        success: Exit code was zero
        stdout: Captured output (empty when streamed to the terminal)
        stderr: Captured error output (empty when streamed to the terminal)
        exit_code: Process exit code (None if it never ran)
        error: Error description when the command could not run
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: Optional[int] = None
    error: Optional[str] = None


def run_command(
    command: str,
    args: Optional[list[str]] = None,
    timeout: float = COMMAND_TIMEOUT,
    capture: bool = False,
    cwd: Optional[Path] = None,
) -> CommandResult:
    """Run a command to completion.

    Args:
        command: Executable name (resolved via PATH)
        args: Arguments
        timeout: Seconds before the command is killed
        capture: Capture output instead of streaming it to the terminal
        cwd: Working directory

    Returns:
        CommandResult
    """
    executable = shutil.which(command) or command
    argv = [executable, *(args or [])]
    logger.debug(f"Running: {' '.join(argv)}")

    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return CommandResult(success=False, error=f"Command timed out after {timeout:.0f}s")
    except OSError as e:
        return CommandResult(success=False, error=str(e))

    return CommandResult(
        success=result.returncode == 0,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        exit_code=result.returncode,
    )


def open_url(url: str) -> bool:
    """Open ``url`` in the default browser, falling back to printing it."""
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error:
        opened = False

    if opened:
        ui.info(f"Opened {url} in your browser")
    else:
        ui.warning(f"Could not open browser automatically. Please visit: {url}")
    return opened


def open_path(path: Path) -> bool:
    """Open a file or folder with the platform's default handler."""
    return open_url(path.resolve().as_uri())


def launch_application(path: str, args: Optional[list[str]] = None) -> bool:
    """Start a GUI application without waiting for it or owning it.

    The application keeps running after the wizard exits.
    """
    kwargs: dict = {"start_new_session": True}
    if sys.platform == "win32":
        kwargs = {"creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP}

    try:
        subprocess.Popen(
            [path, *(args or [])],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **kwargs,
        )
    except OSError as e:
        logger.warning(f"Could not launch {path}: {e}")
        return False
    return True


def install_vscode_extension(extension_id: str) -> bool:
    """Install (or update) a VS Code extension via the ``code`` CLI."""
    with ui.console.status(f"Installing {extension_id}..."):
        result = run_command("code", ["--install-extension", extension_id, "--force"], capture=True)

    if result.success:
        ui.success(f"Installed {extension_id}")
        return True

    ui.error(f"Failed to install {extension_id}")
    detail = (result.stderr or result.error or "").strip()
    if detail:
        ui.error(detail)
    return False


def install_rojo() -> bool:
    """Install Rojo with ``cargo install rojo`` (compiles from source)."""
    ui.info("Installing Rojo via Cargo...")
    ui.warning("This may take 5-10 minutes. Please be patient.")
    ui.newline()

    result = run_command("cargo", ["install", "rojo"])
    if result.success:
        ui.success("Rojo installed successfully!")
        return True

    ui.error("Failed to install Rojo")
    if result.error:
        ui.error(result.error)
    return False


def download_file(url: str, destination: Path, timeout: float = DOWNLOAD_TIMEOUT) -> None:
    """Stream ``url`` to ``destination`` with a progress bar.

    Raises:
        httpx.HTTPError: On network errors or non-2xx responses
        OSError: If the destination cannot be written
    """
    destination.parent.mkdir(parents=True, exist_ok=True)

    with httpx.stream("GET", url, follow_redirects=True, timeout=timeout) as response:
        response.raise_for_status()
        total = int(response.headers.get("Content-Length", 0)) or None

        progress = Progress(
            TextColumn("[cyan]Downloading"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            console=ui.console,
            transient=True,
        )
        with progress, destination.open("wb") as fh:
            task = progress.add_task("download", total=total)
            for chunk in response.iter_bytes():
                fh.write(chunk)
                progress.update(task, advance=len(chunk))

    logger.debug(f"Downloaded {url} to {destination}")


def extract_zip(zip_path: Path, destination: Path) -> None:
    """Extract ``zip_path`` into ``destination``.

    Raises:
        zipfile.BadZipFile: If the archive is corrupt
        ValueError: If a member would be written outside ``destination``
    """
    destination.mkdir(parents=True, exist_ok=True)
    root = destination.resolve()

    with zipfile.ZipFile(zip_path) as archive:
        for member in archive.namelist():
            target = (destination / member).resolve()
            if not target.is_relative_to(root):
                raise ValueError(f"Unsafe path in archive: {member}")
        archive.extractall(destination)


def find_directory(parent: Path, pattern: str) -> Optional[Path]:
    """Return the first directory directly under ``parent`` matching ``pattern``."""
    for candidate in sorted(parent.glob(pattern)):
        if candidate.is_dir():
            return candidate
    return None


def copy_directory(source: Path, destination: Path, exclude: tuple[str, ...] = ()) -> None:
    """Copy the contents of ``source`` into ``destination``, skipping ``exclude`` names."""
    shutil.copytree(source, destination, ignore=shutil.ignore_patterns(*exclude), dirs_exist_ok=True)


def cleanup_directory(path: Path) -> None:
    """Remove ``path`` recursively. A missing path is not an error."""
    shutil.rmtree(path, ignore_errors=True)
