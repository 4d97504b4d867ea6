"""Drive a tunnel through its lifecycle and always clean up after it."""

import sys
from typing import TextIO

from .config import NetworkTunnelConfig, SshForwardingConfig
from .logging import get_logger
from .tunnel import NetworkTunnel

logger = get_logger(__name__)

READY_SIGNAL = "READY"


def signal_ready(stream: TextIO | None = None) -> None:
    """Write the readiness token the parent process waits for."""
    stream = stream if stream is not None else sys.stdout
    print(READY_SIGNAL, file=stream, flush=True)


async def run_and_cleanup(
    tunnel: NetworkTunnel, ready_stream: TextIO | None = None
) -> None:
    """Prepare and serve ``tunnel``, then clean it up whatever happened.

    The readiness token is written as soon as ``prepare`` returns. The parent
    process assumes the tunnel accepts requests from that moment on, so any
    tunnel type that cannot serve immediately after ``prepare`` must delay its
    return until it can.

    An error from ``prepare`` or ``serve`` takes priority over one from
    ``cleanup``.

    Args:
        tunnel: Fresh tunnel instance
        ready_stream: Where to write the readiness token (stdout by default)

    Raises:
        NetworkTunnelError: The first error encountered
    """
    async with tunnel:
        try:
            await tunnel.prepare()
        except Exception:
            signal_ready(ready_stream)
            raise
        signal_ready(ready_stream)

        await tunnel.serve()


async def run(
    config: NetworkTunnelConfig | SshForwardingConfig,
    ssh_binary: str = "ssh",
    ready_stream: TextIO | None = None,
) -> None:
    """Build the tunnel described by ``config`` and run it to completion."""
    if isinstance(config, SshForwardingConfig):
        config = NetworkTunnelConfig(ssh_forwarding=config)
    tunnel = config.build(ssh_binary=ssh_binary)

    logger.debug("Running network tunnel", tunnel_type=type(tunnel).__name__)
    await run_and_cleanup(tunnel, ready_stream=ready_stream)
