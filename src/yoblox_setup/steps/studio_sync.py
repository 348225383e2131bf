"""Roblox Studio connection step.

Launches Studio, walks the user through installing the Rojo plugin and
connecting it to the running server. Whether the plugin actually shows
"Connected" can only be answered by the user.
"""

import logging
from typing import Optional

from yoblox_setup.config import ROJO_PLUGIN_URL
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import AttestationStep, CheckResult, StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.installer import launch_application, open_url
from yoblox_setup.services.prompt import Choice, Prompter
from yoblox_setup.steps.base import Numbered
from yoblox_setup.system.env_detector import StudioInstall, find_roblox_studio

logger = logging.getLogger(__name__)

CONNECTION_ISSUES = [
    Choice(id="error", label='It says "Error" or shows an error message'),
    Choice(id="connecting", label='It says "Connecting..." and stays that way'),
    Choice(id="nothing", label="Nothing happens when I click Connect"),
    Choice(id="refused", label="It says connection failed or refused"),
    Choice(id="other", label="Something else"),
]


def connection_tips(issue: str, port: int) -> list[str]:
    """Troubleshooting tips for a connection problem picked from ``CONNECTION_ISSUES``."""
    address = f"localhost:{port}"
    tips = {
        "error": [
            f"Double-check you typed: {address} (exactly like that)",
            "Make sure there are no extra spaces",
            "Try clicking Disconnect then Connect again",
            "Check if your firewall is blocking the connection",
        ],
        "connecting": [
            "Wait a bit longer - sometimes it takes 10-15 seconds",
            f"Make sure you entered: {address}",
            "Click Disconnect, wait 3 seconds, then Connect again",
            "Allow Roblox Studio through your firewall",
        ],
        "nothing": [
            "Make sure you entered the server address in the text box",
            "Make sure you clicked the Connect button",
            "Try closing the Rojo panel and opening it again",
            "Close and reopen Studio completely",
        ],
        "refused": [
            f"Make sure the server address is EXACTLY: {address}",
            "Try disconnecting and reconnecting",
            "Your firewall might be blocking the connection",
        ],
    }
    return tips.get(
        issue,
        [
            f"Verify server address: {address}",
            "Try closing and reopening the Rojo panel",
            "Close and reopen Studio completely",
            "Try running Studio as administrator",
        ],
    )


class StudioSyncStep(Numbered, AttestationStep):
    name = "studio_sync"
    title = "Connect Roblox Studio"
    attestation_key = ContextKey.STUDIO_CONNECTED

    def __init__(self, prompt: Prompter):
        super().__init__(prompt)
        self._launched = False
        self._plugin_installed = False

    def check(self, context: Context) -> CheckResult:
        connected = bool(context.get(ContextKey.STUDIO_CONNECTED))
        return CheckResult(found=connected, can_skip=connected)

    def prepare(self, context: Context) -> Optional[StepResult]:
        self.show_header()
        self._launched = False
        self._plugin_installed = False

        studio = find_roblox_studio()
        if not studio.found:
            ui.error("Roblox Studio is not installed!")
            ui.warning("Please complete the Studio installation step first.")
            return StepResult.fatal()

        port = context.get(ContextKey.ROJO_PORT)
        if not port or not context.get(ContextKey.ROJO_RUNNING):
            ui.error("Rojo server is not running!")
            ui.warning("Please complete the Rojo server step first.")
            return StepResult.fatal()

        ui.success("Roblox Studio is installed")
        if studio.version:
            ui.info(f"  Version: {studio.version}")
        if studio.all_versions > 1:
            ui.info(f"  Found {studio.all_versions} Studio versions - using most recent")
        ui.success(f"Rojo server is running on port {port}")
        ui.newline()
        ui.divider()

        self._launch(studio)
        ui.divider()

        if not self._install_plugin():
            return StepResult.retry_if(self.prompt.confirm("Ready to try again?", True))
        ui.divider()

        self._show_connect_instructions(context, port)
        return None

    def question(self, context: Context) -> str:
        return 'Do you see "Connected" with a green indicator?'

    def confirmed(self, context: Context) -> StepResult:
        ui.success("Studio successfully connected to Rojo server!")
        ui.info("Any changes you make in VS Code will now sync to Studio.")
        ui.warning("Keep the Rojo panel connected while developing.")
        return StepResult.ok(
            {
                ContextKey.STUDIO_CONNECTED.value: True,
                ContextKey.STUDIO_LAUNCHED.value: self._launched,
                ContextKey.ROJO_PLUGIN_INSTALLED.value: self._plugin_installed,
            }
        )

    def denied(self, context: Context) -> StepResult:
        ui.error("Connection not established.")
        ui.newline()

        issue = self.prompt.select("What's showing in the Rojo panel?", CONNECTION_ISSUES)
        ui.bullet_list(connection_tips(issue, context.get(ContextKey.ROJO_PORT)))
        ui.newline()
        ui.info("Need to restart the Rojo server? Stop this wizard (Ctrl+C) and run it again.")
        ui.newline()

        return StepResult.retry_if(self.prompt.confirm("Ready to try connecting again?", True))

    def _launch(self, studio: StudioInstall) -> None:
        ui.info("STEP 1 of 3: Launch Roblox Studio")
        ui.info("If Studio is already open, that's perfectly fine!")
        ui.newline()

        if self.prompt.confirm("Ready to launch Roblox Studio?", True):
            ui.info("Launching Roblox Studio...")
            if studio.path and launch_application(studio.path):
                ui.success("Studio launch command sent")
                self._launched = True
            else:
                ui.warning("Could not launch Studio automatically. Please open it yourself.")

        self.prompt.pause("Press Enter once Studio is open and you are logged in...")
        ui.newline()

    def _install_plugin(self) -> bool:
        ui.info("STEP 2 of 3: Install the Rojo plugin")
        ui.newline()

        if self.prompt.confirm("Is the Rojo plugin already installed in Studio?", False):
            self._plugin_installed = True
            return True

        open_url(ROJO_PLUGIN_URL)
        ui.newline()
        ui.info("Instructions:")
        ui.bullet_list(
            [
                "Make sure you are logged into Roblox in your browser",
                'Click "Get" (or "Install") on the plugin page',
                'If a popup asks to open Roblox Studio, click "Open"',
                "Studio installs the plugin automatically",
            ]
        )
        ui.newline()

        if self.prompt.confirm("Did the plugin install successfully?", True):
            self._plugin_installed = True
            return True

        ui.error("Rojo plugin not installed.")
        ui.bullet_list(
            [
                "Make sure you are logged into the same account in the browser and in Studio",
                "Restart Studio so it picks up newly installed plugins",
                f"Open the plugin page manually: {ROJO_PLUGIN_URL}",
            ]
        )
        ui.newline()
        logger.debug("User reported the Rojo plugin install failed")
        return False

    def _show_connect_instructions(self, context: Context, port: int) -> None:
        ui.info("STEP 3 of 3: Connect to the Rojo server")
        ui.newline()
        ui.info("In Roblox Studio:")
        ui.bullet_list(
            [
                "Open a place (a new Baseplate works fine)",
                'Go to the "Plugins" tab and click "Rojo" to open the panel',
                f"Type this exactly into the address box: localhost:{port}",
                'Click "Connect" and wait 2-3 seconds',
            ]
        )
        ui.newline()
        ui.info("When connected you'll see:")
        ui.bullet_list(
            [
                '"Connected" text with a green indicator',
                f"Project name: {context.get(ContextKey.PROJECT_NAME) or 'your project name'}",
            ]
        )
        ui.newline()
