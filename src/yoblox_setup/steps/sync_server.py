"""Rojo sync server step.

Starts ``rojo serve`` in the background for the scaffolded project on the
first free port of the preferred/fallback list, then waits for the port to
accept connections. The server keeps running for the rest of the wizard and
is stopped on interruption or exit.
"""

import logging
from pathlib import Path
from typing import Optional

from yoblox_setup.config import Settings
from yoblox_setup.core.context import Context, ContextKey
from yoblox_setup.core.step import CheckResult, StepResult, VerifyResult
from yoblox_setup.exceptions import ProcessStartError
from yoblox_setup.services import console as ui
from yoblox_setup.services.network import NetworkProber, find_free_port
from yoblox_setup.services.process import ProcessSupervisor
from yoblox_setup.services.prompt import Prompter
from yoblox_setup.steps.base import WizardStep

logger = logging.getLogger(__name__)

PROCESS_NAME = "rojo-server"


def server_url(port: int) -> str:
    return f"http://localhost:{port}"


class RojoServerStep(WizardStep):
    """Background Rojo server.

    Args:
        prompt: Prompt provider
        processes: Supervisor that owns the server process
        network: Port and HTTP prober
        settings: Ports and timeouts
    """

    name = "rojo_server"
    title = "Start Rojo Server"

    def __init__(
        self,
        prompt: Prompter,
        processes: ProcessSupervisor,
        network: NetworkProber,
        settings: Optional[Settings] = None,
    ):
        super().__init__(prompt, settings)
        self.processes = processes
        self.network = network

    def check(self, context: Context) -> CheckResult:
        running = bool(context.get(ContextKey.ROJO_PORT)) and self.processes.is_running(PROCESS_NAME)
        return CheckResult(found=running, can_skip=running)

    def verify(self, context: Context) -> Optional[VerifyResult]:
        port = context.get(ContextKey.ROJO_PORT)
        if not port:
            return VerifyResult(verified=False, issues=["No Rojo port configured"])
        if not self.processes.is_running(PROCESS_NAME):
            return VerifyResult(verified=False, issues=["Rojo server process not running"])
        if not self.network.is_port_open(port):
            return VerifyResult(verified=False, issues=[f"Port {port} not listening"])
        return VerifyResult(verified=True)

    def cleanup(self, context: Context) -> None:
        if self.processes.is_running(PROCESS_NAME):
            ui.info("Stopping Rojo server...")
        self.processes.stop(PROCESS_NAME)

    def run(self, context: Context) -> StepResult:
        self.show_header()

        ui.info("Now we will start the Rojo server in the background.")
        ui.info("This server syncs your code from VS Code to Roblox Studio in real-time.")
        ui.newline()

        project_path = context.get(ContextKey.PROJECT_PATH)
        if not project_path:
            ui.error("No project path found. Cannot start Rojo server.")
            ui.warning("Please complete the project scaffolding step first.")
            return StepResult.fatal()

        ui.info(f"Project location: {project_path}")
        ui.newline()

        ui.info("Finding available port for Rojo server...")
        port = find_free_port(self.settings.candidate_ports, self.network.is_port_available)
        if port is None:
            ui.error("All Rojo ports are occupied.")
            ui.warning("Please close any running Rojo servers and try again.")
            return StepResult.retry_if(self.prompt.confirm("Try again?", True))

        if port != self.settings.preferred_port:
            ui.warning(f"Port {self.settings.preferred_port} is already in use")
        ui.success(f"Port {port} is available")
        ui.newline()

        ui.info(f"Starting Rojo server on port {port}...")
        ui.command(f"rojo serve --port {port}")
        try:
            proc = self.processes.start("rojo", ["serve", "--port", str(port)], PROCESS_NAME, cwd=project_path)
        except ProcessStartError as e:
            logger.debug(f"Rojo server failed to start: {e!r}")
            return self._start_failed(e, project_path)

        ui.success(f"Rojo server started (PID: {proc.pid})")
        ui.newline()

        ui.info("Waiting for server to be ready...")
        ready = self.network.wait_for_port(
            port,
            timeout=self.settings.port_wait_timeout,
            interval=self.settings.port_poll_interval,
        )
        if not ready:
            ui.error("Rojo server started but port is not listening.")
            self._show_output()
            self.processes.stop(PROCESS_NAME)
            return StepResult.retry_if(self.prompt.confirm("Try again?", True))

        ui.success("Server is ready and listening!")

        url = server_url(port)
        probe = self.network.test_connection(url, timeout=self.settings.connection_timeout)
        if probe.success:
            ui.success("Server is responding to requests")
        else:
            logger.info(f"Rojo server at {url} did not answer HTTP: {probe.error}")
            ui.warning("Server is listening but not responding to requests.")
            ui.info("This might be normal - continuing anyway...")

        ui.newline()
        ui.divider()
        ui.success("Rojo server is running!")
        ui.info("Server details:")
        ui.bullet_list(
            [
                f"Port: {port}",
                f"URL: {url}",
                f"Project: {Path(project_path).name}",
                "Status: Running in background",
            ]
        )
        ui.newline()
        ui.info("The server will keep running throughout the setup process.")
        ui.divider()

        return StepResult.ok(
            {
                ContextKey.ROJO_PORT.value: port,
                ContextKey.ROJO_URL.value: url,
                ContextKey.ROJO_RUNNING.value: True,
            }
        )

    def _show_output(self) -> None:
        status = self.processes.status(PROCESS_NAME)
        if status is None:
            return
        if status.stderr:
            ui.warning("Server error output:")
            ui.console.print(status.stderr, markup=False)
        if status.stdout:
            ui.info("Server output:")
            ui.console.print(status.stdout, markup=False)

    def _start_failed(self, error: ProcessStartError, project_path: str) -> StepResult:
        ui.error(f"Failed to start Rojo server: {error}")
        ui.newline()
        ui.info("Common issues:")
        ui.bullet_list(
            [
                "Rojo not installed correctly",
                "Another Rojo server already running",
                "Project missing default.project.json",
                "Firewall blocking the port",
            ]
        )
        ui.newline()
        ui.info("Try these commands manually:")
        ui.command(f"cd {project_path}")
        ui.command(f"rojo serve --port {self.settings.preferred_port}")
        ui.newline()
        return StepResult.retry_if(self.prompt.confirm("Try again?", True))
