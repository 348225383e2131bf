"""Command-line entry point for yoblox-setup.

Usage:
    yoblox-setup              Run (or resume) the setup wizard
    yoblox-setup --reset      Discard saved progress and start over
    yoblox-setup --config F   Use settings from F
"""

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from yoblox_setup import __version__
from yoblox_setup.config import APP_NAME, load_settings
from yoblox_setup.core.engine import StateMachine
from yoblox_setup.core.progress import ProgressStore
from yoblox_setup.exceptions import ConfigurationError, StepFailedError
from yoblox_setup.services import console as ui
from yoblox_setup.services.network import NetworkProber
from yoblox_setup.services.process import ProcessSupervisor
from yoblox_setup.services.prompt import RichPrompter
from yoblox_setup.steps import build_steps

logger = logging.getLogger(__name__)

DEBUG_ENV_VAR = "YOBLOX_SETUP_DEBUG"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Interactive setup wizard for Roblox development with Rojo, VS Code and AI assistants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Progress is saved after every step; run again to resume.",
    )
    parser.add_argument("-r", "--reset", action="store_true", help="Reset progress and start fresh")
    parser.add_argument("-v", "--version", action="version", version=f"{APP_NAME} v{__version__}")
    parser.add_argument("--config", type=Path, metavar="PATH", help="Settings file (YAML)")
    parser.add_argument("--debug", action="store_true", help="Show debug logging")
    return parser


def configure_logging(debug: bool = False) -> None:
    """Route log records through rich. WARNING by default, DEBUG on request."""
    level = logging.DEBUG if debug or os.environ.get(DEBUG_ENV_VAR) else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=ui.console, show_path=debug)],
        force=True,
    )


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt


def main(argv: Optional[list[str]] = None) -> int:
    """Run the wizard.

    Returns:
        Exit code: 0 on success or user interrupt, 1 on failure
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.debug)

    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        ui.error(str(e))
        return 1

    # Treat SIGTERM like Ctrl+C so the same cleanup runs
    signal.signal(signal.SIGTERM, _raise_interrupt)

    processes = ProcessSupervisor(stop_grace=settings.stop_grace_period)
    network = NetworkProber()
    prompt = RichPrompter()

    machine = StateMachine(
        build_steps(prompt, processes, network, settings),
        prompt,
        store=ProgressStore(settings.state_file),
        processes=processes,
        reset=args.reset,
    )

    try:
        machine.run()
        return 0
    except KeyboardInterrupt:
        ui.newline()
        ui.warning("Setup interrupted.")
        ui.info("Your progress has been saved. Run yoblox-setup again to resume.")
        return 0
    except StepFailedError as e:
        ui.newline()
        ui.error(f"Setup failed: {e}")
        ui.info("Fix the issue above and run yoblox-setup again to resume.")
        return 1
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        ui.error(f"Unexpected error: {e}")
        ui.info("Run with --debug for details.")
        return 1
    finally:
        processes.stop_all()


if __name__ == "__main__":
    sys.exit(main())
