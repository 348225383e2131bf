"""Capability providers consumed by the engine and the steps.

- console: Wizard output helpers (rich)
- prompt: Interactive prompts (rich.prompt)
- network: Port probing and HTTP reachability
- process: Background process supervisor
- installer: Downloads, install commands and URL opening
"""

from yoblox_setup.services.network import ConnectionResult, NetworkProber, find_free_port
from yoblox_setup.services.process import ManagedProcess, ProcessStatus, ProcessSupervisor
from yoblox_setup.services.prompt import Choice, Prompter, RichPrompter

__all__ = [
    # Network
    "ConnectionResult",
    "NetworkProber",
    "find_free_port",
    # Processes
    "ManagedProcess",
    "ProcessStatus",
    "ProcessSupervisor",
    # Prompts
    "Choice",
    "Prompter",
    "RichPrompter",
]
