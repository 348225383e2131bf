"""Tests for the state machine."""

import pytest

from conftest import RecordingStep
from yoblox_setup.core.context import Context
from yoblox_setup.core.engine import RESUME_QUESTION, StateMachine
from yoblox_setup.core.progress import ProgressRecord, ProgressStore
from yoblox_setup.core.step import CheckResult, StepResult, VerifyResult
from yoblox_setup.exceptions import InvalidStepError, StepFailedError


def runs(events, name):
    return sum(1 for kind, step in events if kind == "run" and step == name)


class TestConstruction:
    """Step list validation happens before anything runs."""

    def test_duplicate_names_rejected(self, make_step, prompter, store):
        with pytest.raises(InvalidStepError, match="Duplicate step name: a"):
            StateMachine([make_step("a"), make_step("a")], prompter(), store=store)

    def test_nameless_step_rejected(self, make_step, prompter, store):
        with pytest.raises(InvalidStepError, match="position 1"):
            StateMachine([make_step("a"), make_step("")], prompter(), store=store)

    def test_starts_with_empty_context(self, make_step, prompter, store):
        machine = StateMachine([make_step("a")], prompter(), store=store)

        assert len(machine.context) == 0
        assert machine.current_index == 0
        assert machine.completed == []


class TestSequentialProgress:
    """Steps run in order; position and completed names track successes."""

    @pytest.mark.parametrize("count", [1, 3, 5])
    def test_index_and_completed_after_k_successes(self, make_step, prompter, store, count):
        steps = [make_step(f"s{i}") for i in range(count + 1)]
        steps[count].results.append(StepResult.fatal())
        machine = StateMachine(steps, prompter(), store=store)

        with pytest.raises(StepFailedError):
            machine.run()

        assert machine.current_index == count
        assert machine.completed == [f"s{i}" for i in range(count)]

    def test_all_steps_run_in_order(self, make_step, prompter, store, events):
        machine = StateMachine([make_step("a"), make_step("b"), make_step("c")], prompter(), store=store)

        machine.run()

        assert [step for kind, step in events if kind == "run"] == ["a", "b", "c"]
        assert machine.finished

    def test_completion_clears_saved_progress(self, make_step, prompter, store):
        machine = StateMachine([make_step("a"), make_step("b")], prompter(), store=store)

        machine.run()

        assert store.load() is None
        assert not store.exists()

    def test_progress_saved_after_each_step(self, make_step, prompter, store):
        snapshots = []

        class Spy(ProgressStore):
            def save(self, record):
                snapshots.append((record.current_state_index, list(record.completed_states)))
                return super().save(record)

        spy = Spy(store.path)
        machine = StateMachine([make_step("a"), make_step("b")], prompter(), store=spy)

        machine.run()

        assert snapshots == [(0, ["a"]), (1, ["a", "b"])]

    def test_unwritable_progress_file_is_not_fatal(self, make_step, prompter, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        machine = StateMachine(
            [make_step("a", StepResult.ok({"k": "v"})), make_step("b")],
            prompter(),
            store=ProgressStore(blocker / "state.json"),
        )

        machine.run()

        assert machine.completed == ["a", "b"]
        assert machine.context["k"] == "v"
        assert machine.finished


class TestRetry:
    """A retry re-runs the same step without advancing."""

    def test_retry_twice_then_success(self, make_step, prompter, store, events):
        server = make_step("server", StepResult.again(), StepResult.again(), StepResult.ok())
        machine = StateMachine([make_step("welcome"), server], prompter(), store=store)

        machine.run()

        assert runs(events, "server") == 3
        assert machine.completed == ["welcome", "server"]
        assert machine.current_index == 2

    def test_retry_position_matches_first_try_success(self, make_step, prompter, tmp_path):
        retried = StateMachine(
            [make_step("a", StepResult.again(), StepResult.ok()), make_step("b", StepResult.fatal())],
            prompter(),
            store=ProgressStore(tmp_path / "retried.json"),
        )
        direct = StateMachine(
            [make_step("a"), make_step("b", StepResult.fatal())],
            prompter(),
            store=ProgressStore(tmp_path / "direct.json"),
        )

        for machine in (retried, direct):
            with pytest.raises(StepFailedError):
                machine.run()

        assert retried.current_index == direct.current_index == 1
        assert retried.completed == direct.completed == ["a"]

    def test_retry_does_not_merge_data(self, make_step, prompter, store):
        step = make_step("a", StepResult(success=False, retry=True, data={"x": 1}), StepResult.ok())
        machine = StateMachine([step], prompter(), store=store)

        machine.run()

        assert "x" not in machine.context


class TestSkip:
    """A skippable presence check bypasses run but still completes the step."""

    def test_scenario_skip_tool_and_merge_version(self, make_step, prompter, store, events):
        steps = [
            make_step("welcome"),
            make_step("toolA", check=CheckResult(found=True, can_skip=True)),
            make_step("toolB", StepResult.ok({"toolBVersion": "1.2.3"})),
        ]
        machine = StateMachine(steps, prompter(), store=store)

        machine.run()

        assert runs(events, "toolA") == 0
        assert dict(machine.context) == {"toolBVersion": "1.2.3"}
        assert machine.completed == ["welcome", "toolA", "toolB"]

    def test_skipped_step_is_never_cleaned_up(self, make_step, prompter, store, events):
        steps = [
            make_step("toolA", check=CheckResult(found=True, can_skip=True)),
            make_step("toolB", KeyboardInterrupt()),
        ]
        machine = StateMachine(steps, prompter(), store=store)

        with pytest.raises(KeyboardInterrupt):
            machine.run()

        assert [step for kind, step in events if kind == "cleanup"] == ["toolB"]

    def test_found_but_not_skippable_still_runs(self, make_step, prompter, store, events):
        machine = StateMachine(
            [make_step("rust", check=CheckResult(found=True, can_skip=False))],
            prompter(),
            store=store,
        )

        machine.run()

        assert runs(events, "rust") == 1

    def test_skippable_but_not_found_runs(self, make_step, prompter, store, events):
        machine = StateMachine(
            [make_step("git", check=CheckResult(found=False, can_skip=True))],
            prompter(),
            store=store,
        )

        machine.run()

        assert runs(events, "git") == 1


class TestContextMerge:
    """Data merges only on success, and only shallowly."""

    def test_success_merges(self, make_step, prompter, store):
        machine = StateMachine([make_step("a", StepResult.ok({"a": 1}))], prompter(), store=store)

        machine.run()

        assert machine.context["a"] == 1

    def test_failure_leaves_context_unchanged(self, make_step, prompter, store):
        steps = [
            make_step("first", StepResult.ok({"a": 0})),
            make_step("second", StepResult(success=False, data={"a": 1})),
        ]
        machine = StateMachine(steps, prompter(), store=store)

        with pytest.raises(StepFailedError):
            machine.run()

        assert machine.context["a"] == 0

    def test_nested_value_replaced_wholesale(self, make_step, prompter, store):
        steps = [
            make_step("a", StepResult.ok({"installed_tools": {"git": True}})),
            make_step("b", StepResult.ok({"installed_tools": {"rust": True}})),
        ]
        machine = StateMachine(steps, prompter(), store=store)

        machine.run()

        assert machine.context["installed_tools"] == {"rust": True}

    def test_later_steps_see_earlier_data(self, make_step, prompter, store):
        reader = make_step("reader")
        machine = StateMachine([make_step("writer", StepResult.ok({"project_path": "/p"})), reader], prompter(), store=store)

        machine.run()

        assert reader.seen_context == [{"project_path": "/p"}]


class TestFatalFailure:
    """A fatal result stops the pipeline and keeps progress resumable."""

    def test_no_later_steps_run(self, make_step, prompter, store, events):
        steps = [make_step("a"), make_step("b", StepResult.fatal()), make_step("c")]
        machine = StateMachine(steps, prompter(), store=store)

        with pytest.raises(StepFailedError) as exc_info:
            machine.run()

        assert exc_info.value.step_name == "b"
        assert runs(events, "c") == 0

    def test_saved_progress_reflects_last_success(self, make_step, prompter, store):
        """The record points at the last completed step, saved before advancing."""
        steps = [make_step("a", StepResult.ok({"k": "v"})), make_step("b", StepResult.fatal()), make_step("c")]
        machine = StateMachine(steps, prompter(), store=store)

        with pytest.raises(StepFailedError):
            machine.run()

        saved = store.load()
        assert saved is not None
        assert saved.current_state_index == 0
        assert saved.completed_states == ["a"]
        assert saved.context == {"k": "v"}

    def test_fatal_first_step_writes_nothing(self, make_step, prompter, store):
        machine = StateMachine([make_step("a", StepResult.fatal())], prompter(), store=store)

        with pytest.raises(StepFailedError):
            machine.run()

        assert store.load() is None


class TestResume:
    """Saved progress is offered for resumption."""

    def test_snapshot_restore_round_trip(self, make_step, prompter, store):
        steps = [make_step("a", StepResult.ok({"a": {"nested": [1, 2]}})), make_step("b", StepResult.fatal())]
        original = StateMachine(steps, prompter(), store=store)
        with pytest.raises(StepFailedError):
            original.run()

        record = ProgressRecord.from_dict(original.snapshot().to_dict())
        restored = StateMachine([make_step("a"), make_step("b")], prompter(), store=store)
        restored.restore(record)

        assert restored.current_index == original.current_index
        assert restored.completed == original.completed
        assert restored.context.to_dict() == original.context.to_dict()

    def test_resume_accepted_continues_from_saved_step(self, make_step, prompter, store, events):
        store.save(ProgressRecord(current_state_index=1, completed_states=["a"], context={"os": "windows"}))
        prompt = prompter(confirms=[True])
        b = make_step("b")
        machine = StateMachine([make_step("a"), b], prompt, store=store)

        machine.run()

        assert prompt.asked == [RESUME_QUESTION]
        assert runs(events, "a") == 0
        assert b.seen_context == [{"os": "windows"}]
        assert machine.completed == ["a", "b"]

    def test_resume_declined_starts_fresh(self, make_step, prompter, store, events):
        store.save(ProgressRecord(current_state_index=1, completed_states=["a"], context={"os": "windows"}))
        machine = StateMachine([make_step("a"), make_step("b", StepResult.fatal())], prompter(confirms=[False]), store=store)

        with pytest.raises(StepFailedError):
            machine.run()

        assert runs(events, "a") == 1
        assert "os" not in machine.context
        assert store.load().completed_states == ["a"]

    def test_reset_ignores_saved_progress_without_asking(self, make_step, prompter, store, events):
        store.save(ProgressRecord(current_state_index=1, completed_states=["a"]))
        prompt = prompter()
        machine = StateMachine([make_step("a"), make_step("b")], prompt, store=store, reset=True)

        machine.run()

        assert prompt.asked == []
        assert runs(events, "a") == 1

    def test_corrupt_progress_starts_fresh(self, make_step, prompter, store, events):
        store.path.write_text("{not json", encoding="utf-8")
        prompt = prompter()
        machine = StateMachine([make_step("a")], prompt, store=store)

        machine.run()

        assert prompt.asked == []
        assert runs(events, "a") == 1

    def test_restored_unknown_keys_are_kept(self, make_step, prompter, store):
        record = ProgressRecord(current_state_index=0, context={"legacy_flag": True})
        machine = StateMachine([make_step("a")], prompter(), store=store)

        machine.restore(record)

        assert machine.context.extras() == {"legacy_flag": True}


class TestInterruption:
    """Interruption and unexpected errors clean up the active step."""

    def test_keyboard_interrupt_cleans_up_and_stops_processes(self, make_step, prompter, store, supervisor, events):
        supervisor.start("rojo", ["serve"], "rojo-server")
        steps = [make_step("a"), make_step("b", KeyboardInterrupt())]
        machine = StateMachine(steps, prompter(), store=store, processes=supervisor)

        with pytest.raises(KeyboardInterrupt):
            machine.run()

        assert ("cleanup", "b") in events
        assert ("cleanup", "a") not in events
        assert supervisor.running() == []
        assert store.load().completed_states == ["a"]

    def test_unexpected_error_cleans_up_and_propagates(self, make_step, prompter, store, events):
        machine = StateMachine([make_step("a", RuntimeError("boom"))], prompter(), store=store)

        with pytest.raises(RuntimeError, match="boom"):
            machine.run()

        assert ("cleanup", "a") in events

    def test_cleanup_failure_does_not_mask_error(self, make_step, prompter, store):
        step = make_step("a", RuntimeError("boom"), cleanup_error=OSError("cleanup broke"))
        machine = StateMachine([step], prompter(), store=store)

        with pytest.raises(RuntimeError, match="boom"):
            machine.run()

    def test_interrupt_without_active_step(self, make_step, prompter, store, supervisor, events):
        machine = StateMachine([make_step("a")], prompter(), store=store, processes=supervisor)

        machine.interrupt()

        assert events == []
        assert supervisor.stop_all_calls == 1


class TestVerifyAll:
    """Deep verification covers completed steps that offer it."""

    def test_only_completed_steps_with_verify(self, make_step, prompter, store):
        class Verified(RecordingStep):
            def verify(self, context: Context):
                return VerifyResult(verified=bool(context.get("ok")))

        verified = Verified(name="v", results=[StepResult.ok({"ok": True})])
        pending = Verified(name="pending", results=[StepResult.fatal()])
        machine = StateMachine([make_step("plain"), verified, pending], prompter(), store=store)

        with pytest.raises(StepFailedError):
            machine.run()

        assert machine.verify_all() == {"v": VerifyResult(verified=True)}
