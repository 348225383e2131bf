"""VS Code extensions for Luau development."""

import logging

from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import CheckResult, StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import install_vscode_extension
from yoblox_setup.steps.base import WizardStep, with_tools
from yoblox_setup.system.env_detector import list_vscode_extensions

logger = logging.getLogger(__name__)


def _vscode_installed(context: Context) -> bool:
    return bool((context.get(ContextKey.INSTALLED_TOOLS) or {}).get("vscode"))


class VSCodeExtensionsStep(WizardStep):
    """Installs the configured extensions. Partial failure is not fatal."""

    name = "vscode_extensions"
    title = "VS Code Extensions"

    def check(self, context: Context) -> CheckResult:
        if not _vscode_installed(context):
            return CheckResult(found=False, can_skip=True)

        installed = list_vscode_extensions() or set()
        return CheckResult(found=all(ext.id.lower() in installed for ext in self.settings.extensions))

    def run(self, context: Context) -> StepResult:
        self.show_header()

        if not _vscode_installed(context):
            ui.warning("VS Code not installed. Skipping extensions.")
            return StepResult.skipped()

        ui.info("Checking VS Code extensions for Luau development.")
        ui.newline()

        already = list_vscode_extensions() or set()
        installed: list[str] = []
        failed = []

        for extension in self.settings.extensions:
            if extension.id.lower() in already:
                ui.success(f"{extension.name} is already installed")
                installed.append(extension.id)
                continue

            ui.info(f"Installing {extension.name}...")
            if install_vscode_extension(extension.id):
                installed.append(extension.id)
            else:
                failed.append(extension)
            ui.newline()

        ui.newline()
        if failed:
            logger.warning(f"{len(failed)} VS Code extension(s) failed to install")
            ui.warning("Some extensions failed to install.")
            ui.info("You can install them manually later from VS Code:")
            ui.bullet_list(f"{ext.name}: {ext.id}" for ext in failed)
        else:
            ui.success("All VS Code extensions installed successfully!")

        return StepResult.ok({ContextKey.INSTALLED_TOOLS.value: with_tools(context, vscode_extensions=installed)})
