"""End-to-end sync check.

Writes a throwaway Luau file into the project's ``src/`` folder and asks the
user whether it shows up in Studio's Explorer. The file is always removed
afterwards, including on interruption.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import AttestationStep, CheckResult, StepResult
from yoblox_setup.services import console as ui
from yoblox_setup.services.prompt import Prompter
from yoblox_setup.steps.base import Numbered

logger = logging.getLogger(__name__)

TEST_FILE_NAME = "_yoblox_test_sync.lua"

# Rojo usually syncs instantly; give it a moment before asking
SYNC_WAIT = 3.0


def sync_file_path(context: Context) -> Optional[Path]:
    project_path = context.get(ContextKey.PROJECT_PATH)
    if not project_path:
        return None
    return Path(project_path) / "src" / TEST_FILE_NAME


def sync_file_content() -> str:
    return (
        "-- Test file created by yoblox-setup wizard\n"
        "-- If you can see this file in Roblox Studio, your sync is working!\n"
        'print("Sync test successful! Your development environment is ready!")\n'
        "\n"
        "return {\n"
        '  message = "This is a test file - it will be automatically deleted",\n'
        f'  timestamp = "{datetime.now(timezone.utc).isoformat()}",\n'
        "}\n"
    )


def remove_sync_file(path: Optional[Path]) -> bool:
    """Delete the test file. Returns False only if it exists and could not be removed."""
    if path is None:
        return True
    try:
        path.unlink()
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
        return False
    return True


class SyncVerificationStep(Numbered, AttestationStep):
    name = "sync_verification"
    title = "Verify End-to-End Sync"
    attestation_key = ContextKey.SYNC_VERIFIED

    def __init__(self, prompt: Prompter, sleep: Callable[[float], None] = time.sleep):
        super().__init__(prompt)
        self._sleep = sleep

    def check(self, context: Context) -> CheckResult:
        verified = bool(context.get(ContextKey.SYNC_VERIFIED))
        return CheckResult(found=verified, can_skip=verified)

    def cleanup(self, context: Context) -> None:
        remove_sync_file(sync_file_path(context))

    def prepare(self, context: Context) -> Optional[StepResult]:
        self.show_header()

        ui.info("We will create a test file and confirm you can see it in Studio.")
        ui.newline()

        path = sync_file_path(context)
        if path is None:
            ui.error("No project path found.")
            return StepResult.fatal()
        if not context.get(ContextKey.ROJO_RUNNING):
            ui.error("Rojo server is not running.")
            return StepResult.fatal()
        if not context.get(ContextKey.STUDIO_CONNECTED):
            ui.error("Studio is not connected.")
            return StepResult.fatal()

        ui.info("Make sure:")
        ui.bullet_list(
            [
                "Roblox Studio is open and visible",
                'The Rojo plugin shows "Connected" (green indicator)',
                "You can see the Explorer panel in Studio",
            ]
        )
        ui.newline()
        self.prompt.pause("Press Enter when ready...")

        ui.info(f"Creating test file: src/{TEST_FILE_NAME}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(sync_file_content(), encoding="utf-8")
        except OSError as e:
            ui.error(f"Failed to create test file: {e}")
            return StepResult.fatal()
        ui.success("Test file created")
        ui.newline()

        ui.info("In Roblox Studio's Explorer:")
        ui.bullet_list(
            [
                'Expand "ServerScriptService" (or wherever src/ is mapped)',
                f"Find a file named: {TEST_FILE_NAME}",
            ]
        )
        ui.newline()
        ui.info("Waiting for file to sync...")
        self._sleep(SYNC_WAIT)
        return None

    def question(self, context: Context) -> str:
        return f'Can you see the file "{TEST_FILE_NAME}" in Studio\'s Explorer?'

    def confirmed(self, context: Context) -> StepResult:
        ui.success("SYNC VERIFIED!")
        ui.success("Your entire development environment is working!")
        ui.newline()

        ui.info("Cleaning up test file...")
        if remove_sync_file(sync_file_path(context)):
            ui.success("Test file removed")
        else:
            ui.warning("Could not remove test file - you can delete it manually.")

        return StepResult.ok({ContextKey.SYNC_VERIFIED.value: True})

    def denied(self, context: Context) -> StepResult:
        path = sync_file_path(context)
        ui.error("File not visible in Studio.")
        ui.newline()
        ui.info("Troubleshooting:")
        ui.bullet_list(
            [
                'Check that Rojo plugin still shows "Connected"',
                'Try clicking "Reconnect" in the Rojo panel',
                "Look in different locations: ServerScriptService, ReplicatedStorage",
                f"Check VS Code - is the file there? Open: {path}",
            ]
        )
        ui.newline()

        if path is None or not path.exists():
            ui.error("Test file was not created on disk!")
            return StepResult.fatal()

        if self.prompt.confirm("Try creating the test file again?", True):
            remove_sync_file(path)
            return StepResult.again()

        ui.warning("Sync verification failed.")
        ui.info("You can continue, but manual verification is recommended.")
        remove_sync_file(path)

        if self.prompt.confirm("Continue anyway?", False):
            return StepResult.ok(
                {
                    ContextKey.SYNC_VERIFIED.value: False,
                    ContextKey.SYNC_SKIPPED.value: True,
                }
            )
        return StepResult.fatal()
