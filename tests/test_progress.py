"""Tests for progress persistence."""

import json
from unittest.mock import patch

import pytest

from yoblox_setup.core.progress import SCHEMA_VERSION, ProgressRecord, ProgressStore


class TestProgressRecord:
    """Test suite for ProgressRecord serialization."""

    def test_wire_keys(self):
        """JSON form uses the camelCase keys of the progress file."""
        record = ProgressRecord(
            current_state_index=2,
            completed_states=["welcome", "roblox_studio"],
            context={"os": "windows"},
            timestamp="2025-01-07T12:05:30+00:00",
        )

        assert record.to_dict() == {
            "version": SCHEMA_VERSION,
            "timestamp": "2025-01-07T12:05:30+00:00",
            "currentStateIndex": 2,
            "completedStates": ["welcome", "roblox_studio"],
            "context": {"os": "windows"},
        }

    def test_timestamp_defaults_to_now(self):
        record = ProgressRecord(current_state_index=0)

        assert record.timestamp.endswith("+00:00")

    def test_from_dict_missing_fields_start_fresh(self):
        """Absent fields fall back to index 0 and empty collections."""
        record = ProgressRecord.from_dict({})

        assert record.current_state_index == 0
        assert record.completed_states == []
        assert record.context == {}

    @pytest.mark.parametrize(
        "data",
        [
            {"currentStateIndex": "3"},
            {"currentStateIndex": -1},
            {"currentStateIndex": True},
            {"completedStates": "welcome"},
            {"completedStates": [1, 2]},
            {"context": []},
        ],
    )
    def test_from_dict_rejects_wrong_types(self, data):
        with pytest.raises(ValueError):
            ProgressRecord.from_dict(data)

    def test_record_immutable(self):
        record = ProgressRecord(current_state_index=1)

        with pytest.raises(AttributeError):
            record.current_state_index = 2  # frozen dataclass


class TestProgressStore:
    """Test suite for ProgressStore."""

    def test_save_then_load(self, store):
        record = ProgressRecord(
            current_state_index=3,
            completed_states=["welcome", "roblox_studio", "vscode"],
            context={"installed_tools": {"vscode": True}},
        )

        assert store.save(record) is True
        loaded = store.load()

        assert loaded == record

    def test_file_is_plain_json(self, store):
        store.save(ProgressRecord(current_state_index=1, completed_states=["welcome"]))

        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert data["currentStateIndex"] == 1
        assert data["completedStates"] == ["welcome"]

    def test_no_temp_file_left_behind(self, store):
        store.save(ProgressRecord(current_state_index=0))

        assert [p.name for p in store.path.parent.iterdir()] == [store.path.name]

    def test_load_missing_file(self, store):
        assert store.load() is None

    def test_load_corrupt_json(self, store):
        """Corrupt files are treated as absent."""
        store.path.write_text("{ this is not json", encoding="utf-8")

        assert store.load() is None

    def test_load_non_object(self, store):
        store.path.write_text("[1, 2, 3]", encoding="utf-8")

        assert store.load() is None

    def test_load_wrong_field_type(self, store):
        store.path.write_text(json.dumps({"currentStateIndex": "two"}), encoding="utf-8")

        assert store.load() is None

    def test_save_unserializable_context(self, store):
        """A context value JSON cannot encode downgrades to a failed save."""
        assert store.save(ProgressRecord(current_state_index=0, context={"bad": object()})) is False
        assert not store.exists()

    def test_save_write_failure(self, store):
        with patch("pathlib.Path.replace", side_effect=PermissionError("read-only")):
            assert store.save(ProgressRecord(current_state_index=0)) is False

        assert not store.exists()

    def test_clear(self, store):
        store.save(ProgressRecord(current_state_index=0))

        store.clear()

        assert not store.exists()

    def test_clear_missing_file(self, store):
        """Clearing when nothing is saved is not an error."""
        store.clear()

        assert store.load() is None

    def test_save_creates_parent_directory(self, tmp_path):
        store = ProgressStore(tmp_path / "nested" / "state.json")

        assert store.save(ProgressRecord(current_state_index=0)) is True
        assert store.exists()
