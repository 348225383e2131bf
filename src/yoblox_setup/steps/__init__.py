"""Concrete wizard steps in pipeline order.

- welcome: Banner, system information, confirmation
- tools: Roblox Studio, VS Code, Git, Rust + Cargo, Rojo
- extensions: VS Code extensions
- ai_cli: Optional AI assistant CLI
- scaffold: Project creation from the yoblox template
- sync_server: Background Rojo server
- studio_sync: Studio plugin install and connection
- sync_verification: End-to-end sync check
- summary: Final summary and next-step menu
"""

from typing import Optional

from yoblox_setup.config import Settings
from yoblox_setup.core.step import Step
from yoblox_setup.services.network import NetworkProber
from yoblox_setup.services.process import ProcessSupervisor
from yoblox_setup.services.prompt import Prompter
from yoblox_setup.steps.ai_cli import AiCliStep
from yoblox_setup.steps.base import number_steps
from yoblox_setup.steps.extensions import VSCodeExtensionsStep
from yoblox_setup.steps.scaffold import ScaffoldStep
from yoblox_setup.steps.studio_sync import StudioSyncStep
from yoblox_setup.steps.summary import FinalSummaryStep
from yoblox_setup.steps.sync_server import RojoServerStep
from yoblox_setup.steps.sync_verification import SyncVerificationStep
from yoblox_setup.steps.tools import GitStep, RobloxStudioStep, RojoStep, RustStep, VSCodeStep
from yoblox_setup.steps.welcome import WelcomeStep


def build_steps(
    prompt: Prompter,
    processes: ProcessSupervisor,
    network: NetworkProber,
    settings: Optional[Settings] = None,
) -> list[Step]:
    """Create the wizard pipeline.

    Args:
        prompt: Prompt provider shared by every step
        processes: Supervisor owning the Rojo server
        network: Port and HTTP prober
        settings: Wizard settings (defaults when None)

    Returns:
        Steps in execution order, with header numbers assigned
    """
    settings = settings or Settings()
    steps: list[Step] = [
        WelcomeStep(prompt, settings),
        RobloxStudioStep(prompt, settings),
        VSCodeStep(prompt, settings),
        GitStep(prompt, settings),
        RustStep(prompt, settings),
        RojoStep(prompt, settings),
        VSCodeExtensionsStep(prompt, settings),
        AiCliStep(prompt, settings),
        ScaffoldStep(prompt, settings, network),
        RojoServerStep(prompt, processes, network, settings),
        StudioSyncStep(prompt),
        SyncVerificationStep(prompt),
        FinalSummaryStep(prompt, settings),
    ]
    number_steps(steps)
    return steps


__all__ = [
    "AiCliStep",
    "FinalSummaryStep",
    "GitStep",
    "RobloxStudioStep",
    "RojoServerStep",
    "RojoStep",
    "RustStep",
    "ScaffoldStep",
    "StudioSyncStep",
    "SyncVerificationStep",
    "VSCodeExtensionsStep",
    "VSCodeStep",
    "WelcomeStep",
    "build_steps",
]
