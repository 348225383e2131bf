"""State machine driving the setup pipeline.

Coordinates sequential execution of steps with support for:
- Skipping steps whose presence check says they are already done
- Retrying a step on request, without advancing
- Persisting progress after every completed step
- Resuming from saved progress
- Cleaning up the active step on interruption

Exactly one step runs at a time. The context is only touched by the active
step and by the engine's merge/persist logic, so no locking is needed.
"""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Optional

from yoblox_setup.core.context import Context
from yoblox_setup.core.progress import ProgressRecord, ProgressStore
from yoblox_setup.core.step import Step, StepResult, VerifyResult, validate_steps
from yoblox_setup.exceptions import StepFailedError

if TYPE_CHECKING:
    from yoblox_setup.services.process import ProcessSupervisor
    from yoblox_setup.services.prompt import Prompter

logger = logging.getLogger(__name__)

RESUME_QUESTION = "Found previous setup progress. Resume from where you left off?"


class StateMachine:
    """Runs steps in order against a shared context.

    Args:
        steps: Ordered steps. Names must be unique.
        prompt: Prompt provider used for the resume question
        store: Progress store (defaults to the well-known state file)
        processes: Process supervisor whose processes are stopped on interruption
        reset: Ignore saved progress and start fresh

    Raises:
        InvalidStepError: If any step violates the step contract

    Example:
        >>> machine = StateMachine(steps, prompt=RichPrompter())
        >>> machine.run()
        >>> machine.context.get("rojo_port")
        34872
    """

    def __init__(
        self,
        steps: Sequence[Step],
        prompt: "Prompter",
        store: Optional[ProgressStore] = None,
        processes: Optional["ProcessSupervisor"] = None,
        reset: bool = False,
    ):
        validate_steps(steps)
        self.steps = list(steps)
        self.prompt = prompt
        self.store = store or ProgressStore()
        self.processes = processes
        self.reset = reset

        self.context = Context()
        self.current_index = 0
        self.completed: list[str] = []
        self._active: Optional[Step] = None

    @property
    def current_step(self) -> Optional[Step]:
        if 0 <= self.current_index < len(self.steps):
            return self.steps[self.current_index]
        return None

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.steps)

    def snapshot(self) -> ProgressRecord:
        """Capture position, completed names and context as a progress record."""
        return ProgressRecord(
            current_state_index=self.current_index,
            completed_states=list(self.completed),
            context=self.context.to_dict(),
        )

    def restore(self, record: ProgressRecord) -> None:
        """Restore position, completed names and context verbatim.

        No compatibility check against the current step list is made: keys
        no step uses anymore are kept and simply never read.
        """
        self.current_index = record.current_state_index
        self.completed = list(record.completed_states)
        self.context = Context.from_dict(record.context)

        step = self.current_step
        logger.info(f"Resuming from step: {step.name if step else 'unknown'}")

    def save_progress(self) -> bool:
        return self.store.save(self.snapshot())

    def run(self) -> None:
        """Run every pending step, then clear saved progress.

        Raises:
            StepFailedError: If a step fails without asking for a retry.
                Saved progress is kept so the next run resumes there.
            KeyboardInterrupt: If interrupted; the active step is cleaned up
                and managed processes are stopped first
        """
        self._resume_or_reset()

        while not self.finished:
            step = self.steps[self.current_index]
            result = self._execute(step)

            if result.retry:
                logger.info(f"Retrying {step.name}...")
                continue

            if not result.success:
                logger.error(f"Error in step {step.name}")
                raise StepFailedError(step.name)

            if step.name not in self.completed:
                self.completed.append(step.name)
            self.save_progress()
            self.current_index += 1

        self.store.clear()

    def verify_all(self) -> dict[str, VerifyResult]:
        """Run deep verification for every completed step that offers it."""
        results: dict[str, VerifyResult] = {}
        for step in self.steps:
            if step.name not in self.completed or not step.supports_verify:
                continue
            outcome = step.verify(self.context)
            if outcome is not None:
                results[step.name] = outcome
        return results

    def interrupt(self) -> None:
        """Clean up after an external interruption.

        Cleans up the active step, then stops every managed process. No
        special progress record is written: the last normal record stays
        authoritative and the interrupted step reruns from scratch.
        """
        if self._active is not None:
            self._cleanup(self._active)
        if self.processes is not None:
            self.processes.stop_all()

    def _resume_or_reset(self) -> None:
        if self.reset:
            self.store.clear()
            return

        saved = self.store.load()
        if saved is None:
            return

        if self.prompt.confirm(RESUME_QUESTION, True):
            self.restore(saved)
        else:
            self.store.clear()

    def _execute(self, step: Step) -> StepResult:
        self._active = step
        try:
            check = step.check(self.context)
            if check.skippable:
                logger.info(f"Skipping {step.name} (already completed)")
                return StepResult.skipped()

            result = step.run(self.context)
            if result.success and result.data:
                self.context.merge(result.data)
            return result
        except KeyboardInterrupt:
            self.interrupt()
            raise
        except Exception:
            self._cleanup(step)
            raise
        finally:
            self._active = None

    def _cleanup(self, step: Step) -> None:
        try:
            step.cleanup(self.context)
        except Exception as e:
            logger.warning(f"Cleanup of {step.name} failed: {e}")
