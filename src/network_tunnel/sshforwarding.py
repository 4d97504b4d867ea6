"""SSH port forwarding tunnel backed by an OpenSSH client process."""

import asyncio
import signal
from collections.abc import AsyncIterator
from enum import Enum

from .config import SshForwardingConfig
from .exceptions import CleanupError, TunnelExitError, TunnelStartupError
from .logging import get_logger
from .tunnel import NetworkTunnel, TunnelState

logger = get_logger(__name__)

# OpenSSH prints this once the forwarding is established
READY_MARKER = "Entering interactive session."

CONNECT_TIMEOUT = 5
SERVER_ALIVE_INTERVAL = 30

_QUIET_PREFIXES = ("debug1:", "Warning: Permanently added")
_FAILURE_MARKERS = (
    "Permission denied",
    "Network is unreachable",
    "Connection timed out",
)


class LineSeverity(str, Enum):
    """How a line of ssh diagnostic output should be treated."""

    READY = "ready"
    DEBUG = "debug"
    INFO = "info"
    ERROR = "error"


def classify_line(line: str) -> LineSeverity:
    """Classify one line of ssh stderr output.

    Only ``LineSeverity.READY`` affects control flow. The other values pick the
    log level the line is relayed at.
    """
    if READY_MARKER in line:
        return LineSeverity.READY
    if line.startswith(_QUIET_PREFIXES):
        return LineSeverity.DEBUG
    if any(marker in line for marker in _FAILURE_MARKERS):
        return LineSeverity.ERROR
    return LineSeverity.INFO


def build_command(config: SshForwardingConfig, ssh_binary: str = "ssh") -> list[str]:
    """Build the ssh argument list for a forwarding-only session.

    Args:
        config: Tunnel configuration
        ssh_binary: ssh executable name or path

    Returns:
        Full argument list, executable first
    """
    return [
        ssh_binary,
        # No pseudo-terminal
        "-T",
        # Verbose output carries the readiness marker
        "-v",
        "-o",
        "StrictHostKeyChecking no",
        "-o",
        f"ConnectTimeout={CONNECT_TIMEOUT}",
        "-o",
        f"ServerAliveInterval={SERVER_ALIVE_INTERVAL}",
        "-i",
        config.private_key,
        # Forward ports only, no remote command
        "-N",
        "-L",
        config.forwarding_stanza,
        config.ssh_endpoint,
    ]


def describe_returncode(returncode: int) -> str:
    """Render a process return code for error messages."""
    if returncode < 0:
        try:
            return f"signal {signal.Signals(-returncode).name}"
        except ValueError:
            return f"signal {-returncode}"
    return str(returncode)


class SshForwarding(NetworkTunnel):
    """Forwards a local port to a remote host through ``ssh -L``."""

    def __init__(self, config: SshForwardingConfig, ssh_binary: str = "ssh"):
        """Initialize the tunnel.

        Args:
            config: Tunnel configuration
            ssh_binary: ssh executable name or path
        """
        super().__init__()
        self.config = config
        self.ssh_binary = ssh_binary
        self._process: asyncio.subprocess.Process | None = None

    @property
    def pid(self) -> int | None:
        """Get ssh process ID if spawned"""
        return self._process.pid if self._process else None

    @property
    def command(self) -> list[str]:
        return build_command(self.config, self.ssh_binary)

    async def prepare(self) -> None:
        """Spawn ssh and wait until it reports the forwarding is up.

        If stderr closes before the readiness marker appears the tunnel is
        still treated as ready; ``serve`` reports the failure from the exit
        code.

        Raises:
            TunnelStartupError: If ssh cannot be spawned or its output read
        """
        self._require_state("prepare", TunnelState.UNSTARTED)

        logger.info(
            "ssh forwarding local port to remote host",
            local_port=self.config.local_port,
            forward_host=self.config.forward_host,
            forward_port=self.config.forward_port,
        )

        logger.debug("spawning ssh tunnel", binary=self.ssh_binary)
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self.command,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Failed to spawn ssh tunnel", error=str(e))
            raise TunnelStartupError(f"Failed to spawn ssh tunnel: {e}") from e

        self._transition(TunnelState.STARTING)

        logger.debug("listening on ssh tunnel stderr", pid=self._process.pid)
        try:
            async for line in self._stderr_lines():
                severity = classify_line(line)
                if severity is LineSeverity.READY:
                    logger.debug("ssh tunnel is listening & ready for serving requests")
                    self._transition(TunnelState.READY)
                    return
                self._relay(severity, line)
        except OSError as e:
            raise TunnelStartupError(f"Failed to read ssh tunnel output: {e}") from e

        logger.warning("unexpected end of output from ssh tunnel")
        self._transition(TunnelState.READY)

    async def serve(self) -> None:
        """Wait for the ssh process to exit.

        Raises:
            TunnelExitError: If ssh exits with a non-zero status
        """
        self._require_state("serve", TunnelState.READY)
        self._transition(TunnelState.SERVING)

        logger.debug("awaiting ssh tunnel process", pid=self.pid)
        returncode = await self._wait_for_exit()
        self._transition(TunnelState.TERMINATED)

        if returncode != 0:
            status = describe_returncode(returncode)
            logger.error(
                "network tunnel ssh exit with non-zero code.", exit_code=returncode
            )
            raise TunnelExitError(status)

        logger.info("ssh tunnel exited")

    async def cleanup(self) -> None:
        """Kill the ssh process if one was spawned.

        A process that already exited counts as cleaned up.

        Raises:
            CleanupError: If the process could not be killed
        """
        if self._state is TunnelState.CLEANED_UP:
            return

        if self._process is not None:
            logger.debug("killing ssh tunnel process", pid=self._process.pid)
            try:
                self._process.kill()
            except ProcessLookupError:
                logger.debug("ssh tunnel process already exited")
            except OSError as e:
                logger.error("Failed to kill ssh tunnel process", error=str(e))
                raise CleanupError(f"Failed to kill ssh tunnel process: {e}") from e

            await self._wait_for_exit()

        self._transition(TunnelState.CLEANED_UP)

    async def _stderr_lines(self) -> AsyncIterator[str]:
        """Yield decoded stderr lines until EOF.

        Lines longer than the stream limit are discarded whole; reading
        carries on with the next line.
        """
        assert self._process is not None
        stderr = self._process.stderr
        if stderr is None:
            return
        skipping = False
        while True:
            try:
                raw = await stderr.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                raw = e.partial
                if not raw:
                    return
            except asyncio.LimitOverrunError as e:
                if not skipping:
                    logger.warning("Skipping over-long ssh output line")
                skipping = True
                await stderr.readexactly(e.consumed)
                continue
            if skipping:
                # tail of the over-long line
                skipping = False
                if raw.endswith(b"\n"):
                    continue
                return
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    def _relay(self, severity: LineSeverity, line: str) -> None:
        if severity is LineSeverity.DEBUG:
            logger.debug("ssh: %s", line)
        elif severity is LineSeverity.ERROR:
            logger.error("ssh: %s", line)
        else:
            logger.info("ssh: %s", line)

    async def _relay_remaining(self) -> None:
        try:
            async for line in self._stderr_lines():
                self._relay(classify_line(line), line)
        except OSError as e:
            logger.warning("Stopped relaying ssh tunnel output", error=str(e))

    async def _wait_for_exit(self) -> int:
        """Reap the process while draining its stderr so the pipe never fills."""
        assert self._process is not None
        relay = asyncio.create_task(self._relay_remaining())
        try:
            returncode = await self._process.wait()
            await relay
        finally:
            relay.cancel()
        return returncode
