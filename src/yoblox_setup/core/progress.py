"""Progress persistence.

Stores exactly one progress record in a JSON file so the wizard can resume
where it left off. Every fault here is downgraded to a warning: the wizard
keeps working in memory when the file cannot be read or written.

File format:
    {
      "version": "1.0.0",
      "timestamp": "2025-01-07T12:05:30.123456+00:00",
      "currentStateIndex": 2,
      "completedStates": ["welcome", "roblox_studio", "vscode"],
      "context": {...}
    }
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"
DEFAULT_STATE_FILE = Path(".yoblox-setup-state.json")


@dataclass(frozen=True)
class ProgressRecord:
    """Snapshot of engine position and context.

    Attributes:
        current_state_index: Index of the last completed step. Resume re-runs
            it, and its check usually skips it.
        completed_states: Names of completed steps, in completion order
        context: Full context contents
        version: Schema version tag
        timestamp: ISO 8601 UTC time the record was taken
    """

    current_state_index: int
    completed_states: list[str] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)
    version: str = SCHEMA_VERSION
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "currentStateIndex": self.current_state_index,
            "completedStates": list(self.completed_states),
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressRecord":
        """Parse the JSON form.

        Missing fields fall back to a fresh start (index 0, nothing completed,
        empty context).

        Raises:
            ValueError: If a present field has the wrong type
        """
        index = data.get("currentStateIndex", 0)
        completed = data.get("completedStates", [])
        context = data.get("context", {})

        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise ValueError(f"currentStateIndex must be a non-negative integer, got {index!r}")
        if not isinstance(completed, list) or not all(isinstance(n, str) for n in completed):
            raise ValueError("completedStates must be a list of step names")
        if not isinstance(context, dict):
            raise ValueError("context must be an object")

        return cls(
            current_state_index=index,
            completed_states=completed,
            context=context,
            version=str(data.get("version", SCHEMA_VERSION)),
            timestamp=str(data.get("timestamp", "")),
        )


class ProgressStore:
    """Reads and writes the progress file.

    Example:
        >>> store = ProgressStore(Path("/tmp/state.json"))
        >>> store.save(ProgressRecord(current_state_index=1, completed_states=["welcome"]))
        True
        >>> store.load().completed_states
        ['welcome']
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path or DEFAULT_STATE_FILE

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, record: ProgressRecord) -> bool:
        """Write the record (temp file + replace).

        Returns:
            True if written, False if the write failed (a warning is logged)
        """
        temp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with temp_path.open("w", encoding="utf-8") as f:
                json.dump(record.to_dict(), f, indent=2)
            temp_path.replace(self.path)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not save progress to {self.path}: {e}")
            try:
                if temp_path.exists():
                    temp_path.unlink()
            except OSError as cleanup_error:
                logger.debug(f"Could not remove {temp_path}: {cleanup_error}")
            return False

    def load(self) -> Optional[ProgressRecord]:
        """Read the record.

        Returns:
            The record, or None when the file is missing, unreadable or corrupt
        """
        if not self.path.exists():
            return None

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("progress file must contain an object")
            return ProgressRecord.from_dict(data)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load saved progress ({e}). Starting fresh.")
            return None

    def clear(self) -> None:
        """Delete the progress file. A missing file is not an error."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove {self.path}: {e}")
