"""Interactive prompts.

``Prompter`` is the prompt capability consumed by the engine and the steps.
``RichPrompter`` implements it on top of ``rich.prompt``. Ctrl+C inside a
prompt propagates as ``KeyboardInterrupt`` so the engine can clean up.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

from yoblox_setup.services.console import console as default_console

# A validator returns True when the value is acceptable, or an error message.
Validator = Callable[[str], Union[bool, str]]


@dataclass(frozen=True)
class Choice:
    """One option of a ``select`` prompt."""

    id: str
    label: str
    hint: str = ""


class Prompter(Protocol):
    """Prompt capability."""

    def confirm(self, message: str, default: bool = True) -> bool: ...

    def select(self, message: str, choices: Sequence[Choice]) -> str: ...

    def input(self, message: str, default: str = "", validate: Optional[Validator] = None) -> str: ...

    def pause(self, message: str = "Press Enter to continue...") -> None: ...


class RichPrompter:
    """Terminal prompts rendered with rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or default_console

    def confirm(self, message: str, default: bool = True) -> bool:
        return Confirm.ask(message, default=default, console=self.console)

    def select(self, message: str, choices: Sequence[Choice]) -> str:
        if not choices:
            raise ValueError("select() needs at least one choice")

        for number, choice in enumerate(choices, 1):
            hint = f" [dim]({choice.hint})[/]" if choice.hint else ""
            self.console.print(f"  [cyan][{number}][/] {choice.label}{hint}")

        picked = IntPrompt.ask(
            message,
            choices=[str(n) for n in range(1, len(choices) + 1)],
            default=1,
            console=self.console,
        )
        return choices[picked - 1].id

    def input(self, message: str, default: str = "", validate: Optional[Validator] = None) -> str:
        while True:
            value = Prompt.ask(message, default=default, console=self.console)
            if validate is None:
                return value
            verdict = validate(value)
            if verdict is True:
                return value
            self.console.print(f"[red]{verdict if isinstance(verdict, str) else 'Invalid value'}[/]")

    def pause(self, message: str = "Press Enter to continue...") -> None:
        self.console.input(f"[dim]{message}[/]")
