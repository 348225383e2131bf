"""Toolchain steps: Roblox Studio, VS Code, Git, Rust and Rojo.

Studio and VS Code can only be installed by the user, so those steps open the
download page, wait, and re-detect. Rojo is installed directly with Cargo.
"""

import logging
from typing import Optional

from yoblox_setup.config import GIT_DOWNLOAD_URL, ROBLOX_STUDIO_URL, RUSTUP_URL, VSCODE_DOWNLOAD_URL
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import CheckResult, StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import install_rojo
from yoblox_setup.steps.base import WizardStep, with_tools
from yoblox_setup.system.env_detector import detect_tool, find_roblox_studio
from yoblox_setup.system.platform_info import is_windows

logger = logging.getLogger(__name__)

TRY_AGAIN = "Try checking again?"


class RobloxStudioStep(WizardStep):
    name = "roblox_studio"
    title = "Roblox Studio"

    def check(self, context: Context) -> CheckResult:
        return CheckResult(found=find_roblox_studio().found)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        studio = find_roblox_studio()
        if studio.found:
            ui.success("Roblox Studio is already installed")
            return self._installed(context)

        ui.warning("Roblox Studio not found")
        if studio.reason:
            ui.info(studio.reason)
        ui.info("Roblox Studio must be installed manually.")
        ui.newline()

        if not self.prompt.confirm("Open Roblox Studio download page?", True):
            ui.warning("Skipping Roblox Studio installation.")
            ui.warning("You will need to install it manually later.")
            return StepResult.skipped()

        self.guide_install(
            ROBLOX_STUDIO_URL,
            [
                "Sign in to your Roblox account",
                'Click "Start Creating"',
                "Download and install Roblox Studio",
                "Complete the installation",
            ],
            "Press Enter after Roblox Studio is installed...",
        )

        ui.info("Checking for Roblox Studio...")
        studio = find_roblox_studio()
        if studio.found:
            ui.success("Roblox Studio detected!")
            ui.info(f"Found at: {studio.path}")
            return self._installed(context)

        ui.error("Roblox Studio still not found.")
        ui.warning("Make sure Roblox Studio is fully installed.")

        if self.prompt.confirm(TRY_AGAIN, True):
            return StepResult.again()

        ui.warning("Continuing without Roblox Studio.")
        ui.info(f"You can install it later from: {ROBLOX_STUDIO_URL}")
        return StepResult.skipped()

    def _installed(self, context: Context) -> StepResult:
        return StepResult.ok({ContextKey.INSTALLED_TOOLS.value: with_tools(context, roblox_studio=True)})


class VSCodeStep(WizardStep):
    name = "vscode"
    title = "VS Code"

    def check(self, context: Context) -> CheckResult:
        return CheckResult(found=detect_tool("code").found)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        code = detect_tool("code")
        if code.found:
            ui.success(f"VS Code is already installed ({code.version or 'version unknown'})")
            return self._installed(context)

        ui.warning("VS Code not found or not added to PATH")
        ui.info("VS Code is required for Luau development.")
        ui.newline()

        if not self.prompt.confirm("Open VS Code download page?", True):
            ui.warning("Skipping VS Code installation.")
            return StepResult.skipped()

        if is_windows():
            instructions = [
                "Download the User Installer (64-bit)",
                "Run the installer",
                'IMPORTANT: Check "Add to PATH" during installation',
                "Complete the installation",
                "Restart your terminal after installation",
            ]
        else:
            instructions = [
                "Download VS Code for your platform",
                'Install and ensure "code" command is in PATH',
                "Complete the installation",
            ]
        self.guide_install(VSCODE_DOWNLOAD_URL, instructions, "Press Enter after VS Code is installed...")

        ui.info("Checking for VS Code...")
        code = detect_tool("code")
        if code.found:
            ui.success(f"VS Code detected! ({code.version or 'version unknown'})")
            return self._installed(context)

        ui.error("VS Code still not found in PATH.")
        if is_windows():
            ui.warning("You may need to:")
            ui.bullet_list(
                [
                    "Restart this terminal (close and reopen)",
                    'Reinstall VS Code and check "Add to PATH"',
                    "Manually add VS Code to your PATH",
                ]
            )
        ui.newline()

        if self.prompt.confirm(TRY_AGAIN, True):
            return StepResult.again()

        ui.warning("Continuing without VS Code.")
        ui.info(f"Install manually from: {VSCODE_DOWNLOAD_URL}")
        return StepResult.skipped()

    def _installed(self, context: Context) -> StepResult:
        return StepResult.ok({ContextKey.INSTALLED_TOOLS.value: with_tools(context, vscode=True)})


class GitStep(WizardStep):
    """Optional Git install. Declining is a successful outcome."""

    name = "git"
    title = "Git (Optional)"

    def check(self, context: Context) -> CheckResult:
        return CheckResult(found=detect_tool("git").found, can_skip=True)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        git = detect_tool("git")
        if git.found:
            ui.success(f"Git is already installed ({git.version or 'version unknown'})")
            return self._result(context, True, git.version)

        ui.info("Git is not installed.")
        ui.info("Git is recommended for version control of your game code.")
        ui.newline()

        if not self.prompt.confirm("Do you want to install Git?", True):
            ui.info("Skipping Git installation.")
            return self._result(context, False)

        self.guide_install(
            GIT_DOWNLOAD_URL,
            [
                "Download the installer for your platform",
                "Run the installer (default options are fine)",
                "Complete the installation",
                "Restart your terminal after installation",
            ],
            "Press Enter after Git is installed...",
        )

        ui.info("Checking for Git...")
        git = detect_tool("git")
        if git.found:
            ui.success(f"Git detected! ({git.version or 'version unknown'})")
            return self._result(context, True, git.version)

        ui.error("Git still not found.")
        ui.warning("You may need to restart your terminal.")

        if self.prompt.confirm(TRY_AGAIN, True):
            return StepResult.again()

        ui.info("Continuing without Git.")
        ui.info(f"You can install it later from: {GIT_DOWNLOAD_URL}")
        return self._result(context, False)

    def _result(self, context: Context, installed: bool, version: Optional[str] = None) -> StepResult:
        data = {ContextKey.INSTALLED_TOOLS.value: with_tools(context, git=installed)}
        if version:
            data[ContextKey.GIT_VERSION.value] = version
        return StepResult.ok(data)


class RustStep(WizardStep):
    """Rust and Cargo, required to build Rojo."""

    name = "rust"
    title = "Rust + Cargo"

    def check(self, context: Context) -> CheckResult:
        return CheckResult(found=detect_tool("rustc").found and detect_tool("cargo").found)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        rustc, cargo = detect_tool("rustc"), detect_tool("cargo")
        if rustc.found and cargo.found:
            ui.success(f"Rust is already installed ({rustc.version or 'version unknown'})")
            return self._installed(context, rustc.version)

        ui.info("Rust and Cargo are required to install Rojo.")
        ui.info("Rojo is the tool that syncs your code to Roblox Studio.")
        ui.newline()

        if not self.prompt.confirm("Install Rust + Cargo?", True):
            ui.error("Cannot continue without Rust and Cargo.")
            return StepResult.fatal()

        if is_windows():
            instructions = [
                "Download and run rustup-init.exe",
                "Follow the installer prompts (default options are fine)",
                "Wait for installation to complete (may take 5-10 minutes)",
                "The installer will add Rust to your PATH automatically",
                "You may need to restart your terminal after installation",
            ]
        else:
            instructions = [
                "Run the curl command shown on the page",
                "Follow the prompts",
                "Wait for installation to complete",
                "Restart your terminal after installation",
            ]
        self.guide_install(RUSTUP_URL, instructions, "Press Enter after Rust installation is complete...")

        ui.info("Checking for Rust and Cargo...")
        rustc, cargo = detect_tool("rustc"), detect_tool("cargo")
        if rustc.found and cargo.found:
            ui.success("Rust and Cargo detected!")
            ui.info(f"  rustc: {rustc.version}")
            ui.info(f"  cargo: {cargo.version}")
            return self._installed(context, rustc.version)

        ui.error("Rust and Cargo still not found.")
        ui.newline()
        ui.warning("Troubleshooting:")
        ui.bullet_list(
            [
                "Make sure the installation completed successfully",
                "Restart your terminal (close and reopen)",
                "Check that Cargo is in your PATH",
                r"On Windows, check: %USERPROFILE%\.cargo\bin",
            ]
        )
        ui.newline()

        if self.prompt.confirm(TRY_AGAIN, True):
            return StepResult.again()

        ui.error("Cannot continue without Rust and Cargo.")
        ui.info(f"Please install manually from: {RUSTUP_URL}")
        ui.info("Then run yoblox-setup again.")
        return StepResult.fatal()

    def _installed(self, context: Context, version: Optional[str]) -> StepResult:
        data = {ContextKey.INSTALLED_TOOLS.value: with_tools(context, rust=True, cargo=True)}
        if version:
            data[ContextKey.RUST_VERSION.value] = version
        return StepResult.ok(data)


class RojoStep(WizardStep):
    name = "rojo"
    title = "Rojo"

    def check(self, context: Context) -> CheckResult:
        return CheckResult(found=detect_tool("rojo").found)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        rojo = detect_tool("rojo")
        if rojo.found:
            ui.success(f"Rojo is already installed ({rojo.version or 'version unknown'})")
            return self._installed(context, rojo.version)

        ui.info("Rojo syncs your code from VS Code to Roblox Studio in real-time.")
        ui.info("We can install it now using Cargo.")
        ui.newline()

        if not self.prompt.confirm("Install Rojo via Cargo?", True):
            ui.error("Cannot continue without Rojo.")
            return StepResult.fatal()

        if not install_rojo():
            ui.newline()
            ui.info("Common issues:")
            ui.bullet_list(
                [
                    "Network timeout (try again)",
                    "Disk space insufficient",
                    "Cargo not in PATH (restart terminal)",
                    "Build dependencies missing",
                ]
            )
            ui.newline()

            if self.prompt.confirm("Try again?", True):
                return StepResult.again()

            ui.error("Cannot continue without Rojo.")
            ui.info("Try installing manually: cargo install rojo")
            return StepResult.fatal()

        ui.info("Verifying Rojo installation...")
        rojo = detect_tool("rojo")
        if rojo.found:
            ui.success(f"Rojo installed successfully! ({rojo.version or 'version unknown'})")
            return self._installed(context, rojo.version)

        ui.error("Rojo installed but not found in PATH.")
        ui.warning("You may need to restart your terminal.")
        logger.debug("cargo install rojo succeeded but rojo is not on PATH")
        return StepResult.retry_if(self.prompt.confirm(TRY_AGAIN, True))

    def _installed(self, context: Context, version: Optional[str]) -> StepResult:
        data = {ContextKey.INSTALLED_TOOLS.value: with_tools(context, rojo=True)}
        if version:
            data[ContextKey.ROJO_VERSION.value] = version
        return StepResult.ok(data)
