"""Step contract for the setup pipeline.

Every pipeline stage is a ``Step``: a uniquely named unit with

- ``check(context)``: cheap, side-effect free presence probe. When it reports
  ``found`` and ``can_skip`` the engine never calls ``run``.
- ``verify(context)``: optional deeper verification, used by supervisory
  checks rather than by the main loop.
- ``run(context)``: the real work. Returns a ``StepResult``.
- ``cleanup(context)``: releases long-lived resources on interruption. Must
  be safe to call when ``run`` never executed and must not raise.

Retry is always expressed by returning ``StepResult.again()``; a step never
re-invokes its own ``run``.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from yoblox_setup.core.context import Context, ContextKey, KeyLike
from yoblox_setup.exceptions import InvalidStepError

if TYPE_CHECKING:
    from yoblox_setup.services.prompt import Prompter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a presence check.

    Attributes:
        found: The thing the step sets up is already present
        can_skip: Presence is trustworthy enough to skip ``run``
    """

    found: bool = False
    can_skip: bool = False

    @property
    def skippable(self) -> bool:
        return self.found and self.can_skip


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a deep verification."""

    verified: bool
    issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class StepResult:
    """Outcome of ``Step.run``.

    Attributes:
        success: The step completed (possibly by choosing to continue without
            the thing it sets up)
        retry: Run the same step again from the top (only meaningful when
            ``success`` is False)
        skip: The user chose to move on without completing the step
        data: Entries merged into the context, only when ``success`` is True

    Examples:
        >>> StepResult.ok({"rojo_port": 34872}).data
        {'rojo_port': 34872}
        >>> StepResult.again().retry
        True
        >>> StepResult.fatal().success
        False
    """

    success: bool
    retry: bool = False
    skip: bool = False
    data: Optional[dict[str, Any]] = None

    @classmethod
    def ok(cls, data: Optional[dict[str, Any]] = None) -> "StepResult":
        return cls(success=True, data=data)

    @classmethod
    def skipped(cls, data: Optional[dict[str, Any]] = None) -> "StepResult":
        return cls(success=True, skip=True, data=data)

    @classmethod
    def again(cls) -> "StepResult":
        return cls(success=False, retry=True)

    @classmethod
    def fatal(cls) -> "StepResult":
        return cls(success=False, retry=False)

    @classmethod
    def retry_if(cls, retry: bool) -> "StepResult":
        """Retry when the user asked for it, otherwise fail fatally."""
        return cls(success=False, retry=retry)


class Step(ABC):
    """Base class for pipeline steps."""

    name: str = ""

    def check(self, context: Context) -> CheckResult:
        """Presence check. The default never allows skipping."""
        return CheckResult()

    def verify(self, context: Context) -> Optional[VerifyResult]:
        """Deep verification. ``None`` means the step offers none."""
        return None

    @abstractmethod
    def run(self, context: Context) -> StepResult:
        """Perform the step."""

    def cleanup(self, context: Context) -> None:
        """Release resources acquired by ``run``. No-op by default."""

    @property
    def supports_verify(self) -> bool:
        return type(self).verify is not Step.verify

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class AttestationStep(Step):
    """Step whose outcome is a human answer to a yes/no question.

    Some outcomes (is the file visible in Studio? does the plugin say
    "Connected"?) cannot be observed by the wizard. Modelling them as their
    own step type keeps them apart from automated ``verify`` and lets tests
    inject the answer through a scripted prompt provider.

    Subclasses set ``attestation_key`` and implement ``question``; they may
    override ``prepare`` to check prerequisites and show instructions.
    """

    attestation_key: KeyLike = ""
    default_answer: bool = True

    def __init__(self, prompt: "Prompter"):
        self.prompt = prompt

    def prepare(self, context: Context) -> Optional[StepResult]:
        """Check prerequisites and guide the user.

        Returns:
            A result to return immediately (e.g. fatal missing prerequisite),
            or None to go on and ask the question
        """
        return None

    @abstractmethod
    def question(self, context: Context) -> str:
        """The yes/no question the user attests to."""

    def confirmed(self, context: Context) -> StepResult:
        return StepResult.ok({_attestation_name(self.attestation_key): True})

    def denied(self, context: Context) -> StepResult:
        return StepResult.retry_if(self.prompt.confirm("Try again?", True))

    def run(self, context: Context) -> StepResult:
        early = self.prepare(context)
        if early is not None:
            return early

        if self.prompt.confirm(self.question(context), self.default_answer):
            return self.confirmed(context)
        return self.denied(context)

    def verify(self, context: Context) -> Optional[VerifyResult]:
        if context.get(self.attestation_key):
            return VerifyResult(verified=True)
        return VerifyResult(verified=False, issues=[f"{self.name} not confirmed"])


def _attestation_name(key: KeyLike) -> str:
    return key.value if isinstance(key, ContextKey) else key


def validate_steps(steps: Sequence[Step]) -> None:
    """Check that every step satisfies the contract.

    Raises:
        InvalidStepError: If a step lacks a name or run routine, or two
            steps share a name

    Examples:
        >>> validate_steps([])
    """
    seen: set[str] = set()
    for index, step in enumerate(steps):
        name = getattr(step, "name", None)
        if not isinstance(name, str) or not name:
            raise InvalidStepError(f"Invalid step at position {index}: must have a name")
        if not callable(getattr(step, "run", None)):
            raise InvalidStepError(f"Invalid step {name}: must have a run function")
        if name in seen:
            raise InvalidStepError(f"Duplicate step name: {name}")
        seen.add(name)
