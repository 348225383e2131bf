"""
yoblox-setup - Interactive setup wizard for Roblox development.

Package structure:
- yoblox_setup.core: Step contract, context, progress persistence, state machine
- yoblox_setup.services: Prompts, console output, processes, network, installers
- yoblox_setup.system: Tool and platform detection
- yoblox_setup.steps: The wizard's steps in pipeline order

Public API:
- StateMachine: Runs steps in order with resume and retry
- Step / AttestationStep: Base classes for pipeline steps
- StepResult / CheckResult / VerifyResult: Step outcomes
- Context / ContextKey: Shared wizard state
"""

from yoblox_setup.core import (
    AttestationStep,
    CheckResult,
    Context,
    ContextKey,
    StateMachine,
    Step,
    StepResult,
    VerifyResult,
)

__version__ = "1.0.0"

__all__ = [
    "AttestationStep",
    "CheckResult",
    "Context",
    "ContextKey",
    "StateMachine",
    "Step",
    "StepResult",
    "VerifyResult",
]
