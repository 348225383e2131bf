"""Welcome screen and system information."""

import logging

from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.steps.base import WizardStep
from yoblox_setup.system import platform_info

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = """
Welcome to yoblox-setup!

This wizard will help you set up everything needed
to build Roblox games with AI assistance.

We'll install:
  • Roblox Studio
  • VS Code + Luau extensions
  • Rojo (for live code sync)
  • AI CLI (Claude or Gemini)

And then scaffold a new project using yoblox.

Estimated time: 15-30 minutes
"""


class WelcomeStep(WizardStep):
    name = "welcome"
    title = "Welcome"

    def run(self, context: Context) -> StepResult:
        ui.clear()
        ui.box(WELCOME_MESSAGE)

        os_name = platform_info.get_os()
        shell = platform_info.get_shell()
        python_version = platform_info.get_python_version()

        ui.info("System Information:")
        ui.bullet_list(
            [
                f"OS: {os_name} ({platform_info.get_arch()})",
                f"Shell: {shell}",
                f"Python: {python_version}",
            ]
        )
        ui.newline()

        if os_name != "windows":
            ui.warning("Note: This wizard is optimized for Windows.")
            ui.warning("Some features may not work correctly on other platforms.")
            ui.newline()

            if not self.prompt.confirm("Continue anyway?", False):
                ui.info("Setup cancelled.")
                return StepResult.fatal()
        elif not platform_info.is_admin():
            ui.warning("Not running as Administrator.")
            ui.info("Some installations may require elevated privileges.")
            ui.newline()

        if not self.prompt.confirm("Ready to begin setup?", True):
            ui.info("Setup cancelled. Run yoblox-setup again when ready.")
            return StepResult.fatal()

        logger.debug(f"Detected {os_name} / {shell} / Python {python_version}")
        return StepResult.ok(
            {
                ContextKey.OS.value: os_name,
                ContextKey.SHELL.value: shell,
                ContextKey.PYTHON_VERSION.value: python_version,
            }
        )
