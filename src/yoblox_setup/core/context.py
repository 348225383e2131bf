"""Shared wizard context.

The context is the single key/value store threaded through every step. It
only ever grows: keys are added or overwritten, never removed. Merges are
shallow, so a step that returns a nested mapping for a key replaces the
previous value for that key entirely.
"""

import copy
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, Optional, Union


class ContextKey(str, Enum):
    """Well-known context keys written by the built-in steps.

    Any other string is also accepted as a key; those land in the
    ``extras()`` bag.
    """

    OS = "os"
    SHELL = "shell"
    PYTHON_VERSION = "python_version"
    INSTALLED_TOOLS = "installed_tools"
    USER_CHOICES = "user_choices"
    GIT_VERSION = "git_version"
    RUST_VERSION = "rust_version"
    ROJO_VERSION = "rojo_version"
    PROJECT_NAME = "project_name"
    PROJECT_PATH = "project_path"
    ROJO_PORT = "rojo_port"
    ROJO_URL = "rojo_url"
    ROJO_RUNNING = "rojo_running"
    STUDIO_LAUNCHED = "studio_launched"
    STUDIO_CONNECTED = "studio_connected"
    ROJO_PLUGIN_INSTALLED = "rojo_plugin_installed"
    SYNC_VERIFIED = "sync_verified"
    SYNC_SKIPPED = "sync_skipped"


KeyLike = Union[ContextKey, str]

_KNOWN_KEYS = frozenset(k.value for k in ContextKey)


def _key(key: KeyLike) -> str:
    if isinstance(key, ContextKey):
        return key.value
    if not isinstance(key, str):
        raise TypeError(f"Context keys must be strings, got {type(key).__name__}")
    return key


class Context(Mapping):
    """Append-only mapping of everything the wizard has learned so far.

    Example:
        >>> ctx = Context()
        >>> ctx.merge({"rojo_port": 34872})
        >>> ctx[ContextKey.ROJO_PORT]
        34872
        >>> ctx.get("project_path") is None
        True
    """

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._data: dict[str, Any] = {}
        if data:
            self.merge(data)

    def __getitem__(self, key: KeyLike) -> Any:
        return self._data[_key(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, (ContextKey, str)):
            return _key(key) in self._data
        return False

    def __repr__(self) -> str:
        return f"Context({self._data!r})"

    def get(self, key: KeyLike, default: Any = None) -> Any:
        return self._data.get(_key(key), default)

    def merge(self, data: Mapping[str, Any]) -> None:
        """Shallow-merge ``data`` into the context.

        Nested values are not merged: the new value replaces the old one.

        Example:
            >>> ctx = Context({"installed_tools": {"git": True}})
            >>> ctx.merge({"installed_tools": {"rust": True}})
            >>> ctx["installed_tools"]
            {'rust': True}
        """
        for key, value in data.items():
            self._data[_key(key)] = value

    def known(self) -> dict[str, Any]:
        """Return the entries whose keys are in ``ContextKey``."""
        return {k: v for k, v in self._data.items() if k in _KNOWN_KEYS}

    def extras(self) -> dict[str, Any]:
        """Return the entries with step-specific keys outside ``ContextKey``."""
        return {k: v for k, v in self._data.items() if k not in _KNOWN_KEYS}

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the contents, suitable for serialization."""
        return copy.deepcopy(self._data)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Context":
        """Rebuild a context verbatim from serialized contents."""
        return cls(copy.deepcopy(dict(data)))
