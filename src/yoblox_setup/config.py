"""Wizard settings.

Default values for download URLs, ports, timeouts and file paths, with
optional YAML overrides. Settings are looked up in this order:

1. Explicit path (``--config``)
2. ``$YOBLOX_SETUP_CONFIG``
3. ``./yoblox-setup.yaml``
4. ``<user config dir>/yoblox-setup/config.yaml`` (platformdirs)

Only scalar and list settings can be overridden. Unknown keys are rejected so
that typos surface instead of being silently ignored.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml
from platformdirs import user_config_dir

from yoblox_setup.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

APP_NAME = "yoblox-setup"

CONFIG_ENV_VAR = "YOBLOX_SETUP_CONFIG"
LOCAL_CONFIG_NAME = "yoblox-setup.yaml"

ROBLOX_STUDIO_URL = "https://www.roblox.com/create"
VSCODE_DOWNLOAD_URL = "https://code.visualstudio.com/Download"
RUSTUP_URL = "https://rustup.rs/"
GIT_DOWNLOAD_URL = "https://git-scm.com/downloads"
ROJO_PLUGIN_URL = "https://www.roblox.com/library/13916111004/Rojo"
ROJO_DOCS_URL = "https://rojo.space/docs"

# Roblox Studio can live in several versions folders
ROBLOX_STUDIO_GLOBS = [
    "C:/Users/*/AppData/Local/Roblox/Versions/*/RobloxStudioBeta.exe",
    "C:/Program Files*/Roblox/Versions/*/RobloxStudioBeta.exe",
]


@dataclass(frozen=True)
class Extension:
    """VS Code extension installed by the wizard."""

    id: str
    name: str


@dataclass(frozen=True)
class AiOption:
    """AI assistant CLI offered by the wizard.

    Attributes:
        id: Choice identifier ("claude", "gemini", "none")
        name: Display name
        hint: Short description shown next to the choice
        binary: Executable looked up in PATH (None for "none")
        docs_url: Installation documentation (None for "none")
        install_hints: Instructions shown while the user installs the CLI
    """

    id: str
    name: str
    hint: str
    binary: Optional[str] = None
    docs_url: Optional[str] = None
    install_hints: tuple[str, ...] = ()


DEFAULT_EXTENSIONS = (
    Extension(id="johnnymorganz.luau-lsp", name="Luau Language Server"),
    Extension(id="evaera.vscode-rojo", name="Rojo"),
)

AI_OPTIONS: dict[str, AiOption] = {
    "claude": AiOption(
        id="claude",
        name="Claude CLI (Anthropic)",
        hint="Recommended for code generation",
        binary="claude",
        docs_url="https://docs.anthropic.com/en/docs/claude-code",
        install_hints=(
            "Follow the installation instructions on the page that just opened",
            'Make sure the "claude" command is in your PATH',
        ),
    ),
    "gemini": AiOption(
        id="gemini",
        name="Gemini CLI (Google)",
        hint="Alternative AI assistant",
        binary="gemini",
        docs_url="https://ai.google.dev/",
        install_hints=(
            "Follow the installation instructions on the page that just opened",
            'Make sure the "gemini" command is in your PATH',
        ),
    ),
    "none": AiOption(
        id="none",
        name="Skip AI setup (configure later)",
        hint="You can install an AI CLI manually later",
    ),
}


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the wizard.

    Attributes:
        state_file: Progress file path (relative paths resolve against cwd)
        preferred_port: First port tried for the Rojo server
        fallback_ports: Ports tried in order when the preferred port is taken
        port_wait_timeout: Seconds to wait for the server port to open
        port_poll_interval: Seconds between port probes
        stop_grace_period: Seconds between SIGTERM and SIGKILL when stopping
        connection_timeout: Seconds for the HTTP reachability probe
        template_repo: GitHub ``owner/name`` of the project template
        template_branch: Branch downloaded from the template repo
        default_project_name: Suggested project name
        extensions: VS Code extensions to install
    """

    state_file: Path = Path(".yoblox-setup-state.json")
    preferred_port: int = 34872
    fallback_ports: tuple[int, ...] = (34873, 34874, 34875, 34876)
    port_wait_timeout: float = 10.0
    port_poll_interval: float = 0.5
    stop_grace_period: float = 5.0
    connection_timeout: float = 3.0
    template_repo: str = "avalonreset/yoblox"
    template_branch: str = "master"
    default_project_name: str = "my-roblox-game"
    extensions: tuple[Extension, ...] = DEFAULT_EXTENSIONS

    @property
    def candidate_ports(self) -> list[int]:
        """Preferred port followed by the fallbacks, in probe order."""
        return [self.preferred_port, *self.fallback_ports]

    @property
    def template_url(self) -> str:
        """GitHub codeload URL for the template archive."""
        return f"https://codeload.github.com/{self.template_repo}/zip/refs/heads/{self.template_branch}"


_INT_FIELDS = {"preferred_port"}
_FLOAT_FIELDS = {"port_wait_timeout", "port_poll_interval", "stop_grace_period", "connection_timeout"}
_STR_FIELDS = {"template_repo", "template_branch", "default_project_name"}


def default_config_paths() -> list[Path]:
    """Return candidate settings files, most specific first."""
    paths = []
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        paths.append(Path(env_path))
    paths.append(Path.cwd() / LOCAL_CONFIG_NAME)
    paths.append(Path(user_config_dir(APP_NAME)) / "config.yaml")
    return paths


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings, applying YAML overrides on top of the defaults.

    Args:
        path: Explicit settings file. Must exist when given.

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If the file is unreadable, not valid YAML, or
            contains unknown keys or wrongly typed values
    """
    if path is not None:
        if not path.exists():
            raise ConfigurationError("Settings file not found", file_path=str(path))
        return _load_file(path)

    for candidate in default_config_paths():
        if candidate.exists():
            logger.debug(f"Loading settings from {candidate}")
            return _load_file(candidate)

    return Settings()


def _load_file(path: Path) -> Settings:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", file_path=str(path)) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings: {e}", file_path=str(path)) from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigurationError("Settings file must contain a mapping", file_path=str(path))

    return apply_overrides(Settings(), data, file_path=str(path))


def apply_overrides(base: Settings, data: dict[str, Any], file_path: Optional[str] = None) -> Settings:
    """Return a copy of ``base`` with ``data`` applied.

    Args:
        base: Settings to start from
        data: Raw mapping (typically parsed YAML)
        file_path: Source file, used in error messages

    Raises:
        ConfigurationError: On unknown keys or wrong value types

    Examples:
        >>> apply_overrides(Settings(), {"preferred_port": 40000}).preferred_port
        40000
        >>> apply_overrides(Settings(), {"fallback_ports": [1, 2]}).fallback_ports
        (1, 2)
    """
    known = {f.name for f in fields(Settings)}
    changes: dict[str, Any] = {}

    for key, value in data.items():
        if key not in known:
            raise ConfigurationError(f"Unknown setting: {key}", file_path=file_path)

        if key in _INT_FIELDS:
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigurationError(f"{key} must be an integer", file_path=file_path)
            changes[key] = value
        elif key in _FLOAT_FIELDS:
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"{key} must be a positive number", file_path=file_path)
            changes[key] = float(value)
        elif key in _STR_FIELDS:
            if not isinstance(value, str) or not value:
                raise ConfigurationError(f"{key} must be a non-empty string", file_path=file_path)
            changes[key] = value
        elif key == "state_file":
            if not isinstance(value, str) or not value:
                raise ConfigurationError("state_file must be a path string", file_path=file_path)
            changes[key] = Path(value)
        elif key == "fallback_ports":
            if not isinstance(value, list) or not all(isinstance(p, int) and not isinstance(p, bool) for p in value):
                raise ConfigurationError("fallback_ports must be a list of integers", file_path=file_path)
            changes[key] = tuple(value)
        elif key == "extensions":
            changes[key] = _parse_extensions(value, file_path)

    return replace(base, **changes)


def _parse_extensions(value: Any, file_path: Optional[str]) -> tuple[Extension, ...]:
    if not isinstance(value, list):
        raise ConfigurationError("extensions must be a list", file_path=file_path)

    extensions = []
    for item in value:
        if isinstance(item, str):
            extensions.append(Extension(id=item, name=item))
        elif isinstance(item, dict) and isinstance(item.get("id"), str):
            extensions.append(Extension(id=item["id"], name=str(item.get("name", item["id"]))))
        else:
            raise ConfigurationError("extensions entries need an 'id'", file_path=file_path)
    return tuple(extensions)
