"""Shared pieces of the wizard steps."""

from collections.abc import Sequence
from typing import Any, Optional

from yoblox_setup.config import Settings
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import Step
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import open_url
from yoblox_setup.services.prompt import Prompter


class Numbered:
    """Mixin giving a step a title and its ``[n/total]`` position."""

    title: str = ""
    position: tuple[Optional[int], Optional[int]] = (None, None)

    def show_header(self) -> None:
        ui.header(self.title, *self.position)


class WizardStep(Numbered, Step):
    """Step that talks to the user through a prompt provider."""

    def __init__(self, prompt: Prompter, settings: Optional[Settings] = None):
        self.prompt = prompt
        self.settings = settings or Settings()

    def guide_install(self, url: str, instructions: Sequence[str], pause_message: str) -> None:
        """Open a download page, show instructions and wait for the user."""
        open_url(url)
        ui.newline()
        ui.info("Instructions:")
        ui.bullet_list(instructions)
        ui.newline()
        self.prompt.pause(pause_message)


def number_steps(steps: Sequence[Step]) -> None:
    """Assign ``[n/total]`` header positions in pipeline order."""
    total = len(steps)
    for index, step in enumerate(steps, 1):
        if isinstance(step, Numbered):
            step.position = (index, total)


def with_tools(context: Context, **flags: Any) -> dict[str, Any]:
    """Return ``installed_tools`` with ``flags`` applied.

    Context merges are shallow, so nested records are copied and extended
    rather than returned partially.

    Examples:
        >>> with_tools(Context({"installed_tools": {"git": True}}), rojo=True)
        {'git': True, 'rojo': True}
    """
    return {**(context.get(ContextKey.INSTALLED_TOOLS) or {}), **flags}


def with_choices(context: Context, **choices: Any) -> dict[str, Any]:
    """Return ``user_choices`` with ``choices`` applied."""
    return {**(context.get(ContextKey.USER_CHOICES) or {}), **choices}
