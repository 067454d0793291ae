"""Launch the starter project's dev server on a free local port."""

import atexit
import enum
import errno
import logging
import os
import signal
import socket
import subprocess
import threading
import time
from typing import Callable, List, Optional

import requests
from rich.console import Console
from rich.text import Text

from ..config import DEV_SERVER_CMD, get_settings
from ..exceptions import PortAllocationError, ServeError
from .polling import poll_until

logger = logging.getLogger(__name__)

console = Console()


# -----------------------------------------------------------------
# Port allocation
# -----------------------------------------------------------------


def find_available_port(start_port: int, limit: Optional[int] = None, host: str = "localhost") -> int:
    """Return the first port >= ``start_port`` that accepts a listener.

    Ports reporting "address in use" are skipped; any other bind error is
    raised. The test socket is closed before the port is returned.

    Raises:
        PortAllocationError: If every port in the scanned range is taken.
    """
    if not 1 <= start_port <= 65535:
        raise ValueError(f"Invalid start port: {start_port}")
    if limit is None:
        limit = get_settings().port_scan_limit

    last_port = min(start_port + limit - 1, 65535)
    for port in range(start_port, last_port + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind((host, port))
                s.listen(1)
            except OSError as e:
                if e.errno == errno.EADDRINUSE:
                    logger.debug("Port %d in use, trying %d", port, port + 1)
                    continue
                raise
        return port

    raise PortAllocationError(
        f"No free port found in range {start_port}-{last_port} "
        f"({last_port - start_port + 1} ports tried)"
    )


# -----------------------------------------------------------------
# Dev server
# -----------------------------------------------------------------


class LaunchState(enum.Enum):
    STARTING = "starting"
    READY = "ready"
    TIMED_OUT = "timed_out"
    EXITED = "exited"


class DevServer:
    """The starter project's ``npm run dev`` child process.

    ``start()`` blocks until the first of three events: the ready marker
    shows up on stdout, the process exits, or the timeout elapses. Only the
    first one counts.

    Usage::

        server = DevServer(project_dir, port)
        server.start()      # raises ServeError on exit / timeout
        ...
        server.stop()
    """

    def __init__(
        self,
        cwd: str,
        port: int,
        command: Optional[List[str]] = None,
        ready_marker: Optional[str] = None,
        timeout: Optional[float] = None,
        echo: bool = True,
    ):
        settings = get_settings()
        self.cwd = cwd
        self.port = port
        self.command = [part.replace("{port}", str(port)) for part in (command or DEV_SERVER_CMD)]
        self.ready_marker = ready_marker or settings.dev_server_ready_marker
        self.timeout = timeout or settings.dev_server_timeout
        self.echo = echo
        self.state = LaunchState.STARTING
        self.returncode: Optional[int] = None
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._settled = threading.Event()

    @property
    def base_url(self) -> str:
        return f"http://localhost:{self.port}"

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    def start(self) -> bool:
        """Spawn the server and wait for its ready marker.

        Raises:
            ServeError: If the process cannot be spawned, exits first, or
                times out.
        """
        env = os.environ.copy()
        env["PORT"] = str(self.port)

        logger.info("Starting dev server: %s (cwd=%s)", " ".join(self.command), self.cwd)
        try:
            self._process = subprocess.Popen(
                self.command,
                cwd=self.cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                bufsize=1,
                start_new_session=True,  # own process group for clean kill
            )
        except OSError as e:
            raise ServeError(f"Failed to start the development server: {e}")

        atexit.register(self._atexit_cleanup)

        threading.Thread(target=self._read_stdout, args=(self._process,), daemon=True).start()
        threading.Thread(target=self._read_stderr, args=(self._process,), daemon=True).start()

        if not self._settled.wait(self.timeout):
            self._transition(LaunchState.TIMED_OUT)

        if self.state is LaunchState.READY:
            return True

        if self.state is LaunchState.TIMED_OUT:
            self.stop()
            raise ServeError(
                f"Timeout: server did not start within {self.timeout:g} seconds"
            )

        raise ServeError(f"Development server process exited with code {self.returncode}")

    def stop(self) -> None:
        """Stop the server process and all children via process group kill."""
        if not self._process:
            return

        try:
            pgid = os.getpgid(self._process.pid)
            os.killpg(pgid, signal.SIGTERM)
            try:
                self._process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                os.killpg(pgid, signal.SIGKILL)
                self._process.wait(timeout=2)
        except (ProcessLookupError, OSError):
            pass  # already dead
        finally:
            self._process = None

    def wait(self) -> Optional[int]:
        """Block until the server exits; return its exit code."""
        if not self._process:
            return self.returncode
        return self._process.wait()

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    # -----------------------------------------------------------------
    # Event handling
    # -----------------------------------------------------------------

    def _transition(self, state: LaunchState) -> bool:
        """Move out of STARTING. Returns False if another event already won."""
        with self._lock:
            if self.state is not LaunchState.STARTING:
                return False
            self.state = state
            self._settled.set()
        logger.debug("Dev server state -> %s", state.value)
        return True

    def _read_stdout(self, process: subprocess.Popen) -> None:
        for line in process.stdout:
            if self.echo:
                console.print(line.rstrip("\n"), markup=False, highlight=False)
            if self.ready_marker in line:
                self._transition(LaunchState.READY)

        self.returncode = process.wait()
        if self._transition(LaunchState.EXITED):
            logger.warning("Dev server exited with code %s before it was ready", self.returncode)

    def _read_stderr(self, process: subprocess.Popen) -> None:
        for line in process.stderr:
            if self.echo:
                console.print(Text(line.rstrip("\n"), style="red"))

    def _atexit_cleanup(self) -> None:
        """Safety net: kill server on interpreter exit."""
        if self._process:
            self.stop()


# -----------------------------------------------------------------
# Readiness
# -----------------------------------------------------------------


def wait_for_server_ready(
    port: int,
    attempts: Optional[int] = None,
    interval: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll ``http://localhost:<port>`` until it answers 200.

    Connection errors mean "not ready yet". Returns False once the budget is
    spent; never raises.
    """
    settings = get_settings()
    attempts = attempts or settings.readiness_attempts
    interval = settings.readiness_interval if interval is None else interval
    url = f"http://localhost:{port}"

    def is_ready() -> bool:
        try:
            resp = requests.get(url, timeout=settings.check_timeout)
        except requests.RequestException as e:
            logger.debug("Readiness check %s failed: %s", url, e)
            return False
        return resp.status_code == 200

    return poll_until(is_ready, attempts, interval, sleep=sleep).ok
