"""Final summary and next-step menu."""

import logging
from pathlib import Path
from typing import Optional

from rich.table import Table

from yoblox_setup.config import ROJO_DOCS_URL
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import StepResult, VerifyResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import open_path, open_url, run_command
from yoblox_setup.services.prompt import Choice
from yoblox_setup.steps.base import WizardStep
from yoblox_setup.system.env_detector import ToolInfo, detect_tools

logger = logging.getLogger(__name__)

FINISH = "finish"

# Summary row -> command checked when no step recorded the tool
SUMMARY_COMMANDS = {"vscode": "code", "git": "git", "rust": "rustc", "rojo": "rojo"}


def detect_unrecorded_tools(context: Context) -> dict[str, ToolInfo]:
    """Detect tools whose step finished without recording them.

    A step skipped by its presence check merges no data, so its tool would
    otherwise show as "Not checked".

    Returns:
        Dict mapping summary row key (git, rust, ...) to ToolInfo
    """
    tools = context.get(ContextKey.INSTALLED_TOOLS) or {}
    missing = {key: command for key, command in SUMMARY_COMMANDS.items() if key not in tools}
    if not missing:
        return {}

    result = detect_tools(list(missing.values()))
    logger.debug(f"Re-detected {result.total_found}/{result.total_checked} tools in {result.detection_time_ms:.0f}ms")
    return {key: result.tools[command] for key, command in missing.items() if command in result.tools}


def _mark(value: object) -> str:
    if value is True:
        return "[green]✓ Installed[/]"
    if value is False:
        return "[yellow]Skipped[/]"
    return "[dim]Not checked[/]"


def _tool_row(table: Table, label: str, key: str, tools: dict, version: Optional[str], detected: dict) -> None:
    if key in tools or key not in detected:
        table.add_row(label, _mark(tools.get(key)), version or "")
    elif detected[key].found:
        table.add_row(label, _mark(True), version or detected[key].version or "")
    else:
        table.add_row(label, "[dim]Not found[/]", "")


def build_summary_table(context: Context, detected: Optional[dict[str, ToolInfo]] = None) -> Table:
    """Render the installed tools and project state recorded in ``context``.

    ``detected`` fills in tools the context has no record of (see
    detect_unrecorded_tools).
    """
    tools = context.get(ContextKey.INSTALLED_TOOLS) or {}
    choices = context.get(ContextKey.USER_CHOICES) or {}
    detected = detected or {}

    table = Table(title="Installation Summary", show_header=True, header_style="bold cyan")
    table.add_column("Component")
    table.add_column("Status")
    table.add_column("Details", style="dim")

    table.add_row("Roblox Studio", _mark(tools.get("roblox_studio")), "")
    _tool_row(table, "VS Code", "vscode", tools, None, detected)
    extensions = tools.get("vscode_extensions")
    table.add_row(
        "VS Code extensions",
        _mark(bool(extensions) if extensions is not None else None),
        ", ".join(extensions or []),
    )
    _tool_row(table, "Git", "git", tools, context.get(ContextKey.GIT_VERSION), detected)
    _tool_row(table, "Rust + Cargo", "rust", tools, context.get(ContextKey.RUST_VERSION), detected)
    _tool_row(table, "Rojo", "rojo", tools, context.get(ContextKey.ROJO_VERSION), detected)

    ai_choice = choices.get("ai_choice")
    if ai_choice and ai_choice != "none":
        table.add_row("AI CLI", _mark(True), ai_choice)
    else:
        table.add_row("AI CLI", _mark(False if ai_choice else None), "")

    if context.get(ContextKey.SYNC_VERIFIED):
        sync = "[green]✓ Verified[/]"
    elif context.get(ContextKey.SYNC_SKIPPED):
        sync = "[yellow]Not verified[/]"
    else:
        sync = "[dim]Not checked[/]"
    table.add_row("Studio sync", sync, context.get(ContextKey.ROJO_URL) or "")
    return table


class FinalSummaryStep(WizardStep):
    name = "final_summary"
    title = "Setup Complete"

    def verify(self, context: Context) -> VerifyResult:
        return VerifyResult(verified=True)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        ui.success("SETUP COMPLETE!")
        ui.success("Your Roblox development environment is ready to use!")
        ui.newline()
        ui.console.print(build_summary_table(context, detect_unrecorded_tools(context)))
        ui.newline()

        project_path = context.get(ContextKey.PROJECT_PATH)
        if project_path:
            ui.info("Your project:")
            ui.bullet_list(
                [
                    f"Name: {context.get(ContextKey.PROJECT_NAME)}",
                    f"Location: {project_path}",
                ]
            )
            ui.newline()

        while True:
            action = self.prompt.select("Choose an action:", self._menu(project_path))
            ui.newline()
            if action == FINISH:
                break
            self._perform(action, project_path)

        ui.divider()
        ui.success("Thank you for using yoblox-setup!")
        ui.info("Happy game development!")
        if context.get(ContextKey.ROJO_RUNNING):
            ui.warning("NOTE: The Rojo server stops when this wizard exits.")
            ui.info("Run `rojo serve` in your project folder to start it again.")
        ui.divider()

        return StepResult.ok()

    def _menu(self, project_path: Optional[str]) -> list[Choice]:
        choices = []
        if project_path:
            choices.append(Choice(id="vscode", label="Open project in VS Code"))
            choices.append(Choice(id="folder", label="Open project folder"))
        choices.append(Choice(id="docs", label="View Rojo documentation"))
        choices.append(Choice(id=FINISH, label="Finish"))
        return choices

    def _perform(self, action: str, project_path: str) -> None:
        if action == "vscode":
            ui.info("Opening VS Code...")
            result = run_command("code", [project_path], capture=True, timeout=30)
            if result.success:
                ui.success("VS Code opened")
            else:
                logger.debug(f"code {project_path} failed: {result.error or result.stderr}")
                ui.error("Could not open VS Code automatically.")
                ui.command(f'code "{project_path}"')
        elif action == "folder":
            ui.info("Opening project folder...")
            open_path(Path(project_path))
        elif action == "docs":
            open_url(ROJO_DOCS_URL)
        ui.newline()
