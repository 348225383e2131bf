"""AI assistant CLI selection and guided install.

After picking Claude or Gemini the step keeps re-checking for the CLI until it
appears. Typing ``s`` at the recheck prompt goes back to the selection menu by
asking the engine to run the step again.
"""

import logging
from typing import Union

from yoblox_setup.config import AI_OPTIONS, AiOption
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import CheckResult, StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import open_url
from yoblox_setup.services.prompt import Choice
from yoblox_setup.steps.base import WizardStep, with_choices, with_tools
from yoblox_setup.system.env_detector import detect_tool
from yoblox_setup.system.platform_info import is_windows

logger = logging.getLogger(__name__)

RECHECK_PROMPT = "Press Enter to recheck, or type 's' to switch/skip AI setup"


def recheck_answer(value: str) -> Union[bool, str]:
    """Accept an empty answer (recheck) or ``s`` (switch).

    Examples:
        >>> recheck_answer("")
        True
        >>> recheck_answer("S")
        True
        >>> recheck_answer("x")
        'Please press Enter or type "s"'
    """
    if value == "" or value.lower() == "s":
        return True
    return 'Please press Enter or type "s"'


class AiCliStep(WizardStep):
    name = "ai_cli"
    title = "AI Assistant CLI"

    def check(self, context: Context) -> CheckResult:
        choices = context.get(ContextKey.USER_CHOICES) or {}
        configured = bool(choices.get("ai_choice") and choices.get("ai_configured"))
        return CheckResult(found=configured, can_skip=True)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        ui.info("AI assistants help you generate code for your Roblox game.")
        ui.info("You can use them via browser or install a CLI for terminal access.")
        ui.newline()
        ui.info("Choose an AI assistant:")
        ui.newline()

        choice = self.prompt.select(
            "Which AI assistant do you want?",
            [Choice(id=option.id, label=option.name, hint=option.hint) for option in AI_OPTIONS.values()],
        )
        option = AI_OPTIONS[choice]

        if option.binary is None:
            ui.newline()
            ui.warning("Skipping AI setup.")
            ui.info("You can still use browser-based AI assistants or install a CLI later.")
            return StepResult.ok(
                {ContextKey.USER_CHOICES.value: with_choices(context, ai_choice=option.id, ai_configured=True)}
            )

        return self._install(option, context)

    def _install(self, option: AiOption, context: Context) -> StepResult:
        ui.newline()
        ui.info(f"Setting up {option.name}...")
        ui.newline()

        while True:
            cli = detect_tool(option.binary)
            if cli.found:
                ui.success(f"{option.name} detected and ready to use!")
                if cli.version:
                    ui.info(f"  Version: {cli.version}")
                return StepResult.ok(
                    {
                        ContextKey.USER_CHOICES.value: with_choices(context, ai_choice=option.id, ai_configured=True),
                        ContextKey.INSTALLED_TOOLS.value: with_tools(context, ai_cli=option.id),
                    }
                )

            ui.warning(f"{option.name} not detected in PATH.")
            ui.newline()

            if option.docs_url:
                ui.info("Opening installation documentation in your browser...")
                open_url(option.docs_url)
                ui.newline()

            ui.info("Installation instructions:")
            hints = list(option.install_hints)
            if is_windows():
                hints.append("You may need to restart your terminal after installation")
            ui.bullet_list(hints)
            ui.newline()
            ui.divider()
            ui.newline()

            action = self.prompt.input(RECHECK_PROMPT, "", recheck_answer)
            if action.lower() == "s":
                logger.debug(f"Switching away from {option.id}")
                return StepResult.again()

            ui.newline()
            ui.info(f"Checking for {option.binary} command...")
