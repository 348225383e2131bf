"""Step orchestration engine.

This package contains the pipeline core:
- context: Shared append-only key/value store
- step: Step contract, results and the attestation step type
- progress: Progress record persistence
- engine: State machine driving the steps
"""

from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.engine import StateMachine
from yoblox_setup.core.progress import ProgressRecord, ProgressStore
from yoblox_setup.core.step import AttestationStep, CheckResult, Step, StepResult, VerifyResult, validate_steps

__all__ = [
    "AttestationStep",
    "CheckResult",
    "Context",
    "ContextKey",
    "ProgressRecord",
    "ProgressStore",
    "StateMachine",
    "Step",
    "StepResult",
    "VerifyResult",
    "validate_steps",
]
