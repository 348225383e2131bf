"""Network probing.

Port checks, port availability, readiness polling and HTTP reachability for
the Rojo server step.
"""

import logging
import socket
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

PORT_CHECK_TIMEOUT = 2.0
INTERNET_TEST_URLS = ("https://1.1.1.1", "https://8.8.8.8")


@dataclass(frozen=True)
class ConnectionResult:
    """Result of an HTTP reachability probe.

    Attributes:
        success: A response (any status) was received
        status_code: HTTP status (None on failure)
        error: Error description (None on success)
    """

    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


def find_free_port(candidates: Iterable[int], is_available: Callable[[int], bool]) -> Optional[int]:
    """Return the first candidate port that is available.

    Candidates are probed in order and probing stops at the first hit.

    Args:
        candidates: Ports in preference order
        is_available: Probe returning True when a port can be bound

    Returns:
        Selected port, or None when every candidate is taken

    Examples:
        >>> find_free_port([34872, 34873, 34874], lambda p: p != 34872)
        34873
        >>> find_free_port([1, 2], lambda p: False) is None
        True
    """
    for port in candidates:
        if is_available(port):
            return port
        logger.debug(f"Port {port} is in use")
    return None


class NetworkProber:
    """Port and HTTP probes.

    Args:
        sleep: Sleep function used between polls (injectable for tests)
        clock: Monotonic clock used for timeouts (injectable for tests)
    """

    def __init__(self, sleep: Callable[[float], None] = time.sleep, clock: Callable[[], float] = time.monotonic):
        self._sleep = sleep
        self._clock = clock

    def is_port_open(self, port: int, host: str = "localhost", timeout: float = PORT_CHECK_TIMEOUT) -> bool:
        """Return True if something accepts TCP connections on ``host:port``."""
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            return False

    def is_port_available(self, port: int, host: str = "0.0.0.0") -> bool:
        """Return True if ``port`` can be bound on ``host``."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            try:
                sock.bind((host, port))
            except OSError:
                return False
        return True

    def wait_for_port(
        self,
        port: int,
        timeout: float = 30.0,
        host: str = "localhost",
        interval: float = 0.5,
    ) -> bool:
        """Poll until ``port`` is open or ``timeout`` seconds pass.

        Returns:
            True if the port opened, False on timeout
        """
        deadline = self._clock() + timeout
        while self._clock() < deadline:
            if self.is_port_open(port, host):
                return True
            self._sleep(interval)
        return False

    def test_connection(self, url: str, timeout: float = 5.0) -> ConnectionResult:
        """Issue one GET to ``url``. Any HTTP response counts as reachable."""
        try:
            response = httpx.get(url, timeout=timeout)
            return ConnectionResult(success=True, status_code=response.status_code)
        except httpx.TimeoutException:
            return ConnectionResult(success=False, error="Connection timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return ConnectionResult(success=False, error=str(e) or type(e).__name__)

    def has_internet_connection(self, urls: Iterable[str] = INTERNET_TEST_URLS) -> bool:
        return any(self.test_connection(url, timeout=3.0).success for url in urls)
