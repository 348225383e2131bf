"""Wizard output helpers.

Consistent, colored terminal output for the steps: headers, status lines,
lists and boxed messages. Caller text is printed literally, so paths and
error text containing square brackets are safe. Diagnostics go through
``logging`` instead.
"""

from collections.abc import Iterable
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

console = Console(highlight=False)

RULE_WIDTH = 60


def header(text: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
    """Print a step header, e.g. ``[4/13] Git (Optional)``."""
    prefix = f"[{current}/{total}] " if current and total else ""
    console.print()
    console.print("━" * RULE_WIDTH, style="bold cyan")
    console.print(f"{prefix}{text}", style="bold", markup=False)
    console.print("━" * RULE_WIDTH, style="bold cyan")
    console.print()


def info(message: str) -> None:
    console.print(f"[blue]ℹ[/] {escape(message)}")


def success(message: str) -> None:
    console.print(f"[green]✓[/] {escape(message)}")


def warning(message: str) -> None:
    console.print(f"[yellow]⚠[/] {escape(message)}")


def error(message: str) -> None:
    console.print(f"[red]✗[/] {escape(message)}")


def bullet_list(items: Iterable[str], symbol: str = "•") -> None:
    for item in items:
        console.print(f"  [cyan]{escape(symbol)}[/] {escape(item)}")


def command(text: str) -> None:
    console.print(f"[dim]$[/] {escape(text)}")


def box(message: str, title: Optional[str] = None, style: str = "cyan") -> None:
    console.print(Panel(escape(message.strip()), title=title, border_style=style, padding=(1, 2), expand=False))


def divider() -> None:
    console.print("─" * RULE_WIDTH, style="dim")


def newline() -> None:
    console.print()


def clear() -> None:
    console.clear()
