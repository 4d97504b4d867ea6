"""Network tunnel - forward a local port to a remote host through a transport process."""

from .config import NetworkTunnelConfig, SshForwardingConfig
from .exceptions import (
    CleanupError,
    NetworkTunnelError,
    TunnelExitError,
    TunnelStartupError,
    TunnelStateError,
)
from .logging import get_logger, setup_logging
from .runner import READY_SIGNAL, run, run_and_cleanup, signal_ready
from .sshforwarding import SshForwarding, build_command, classify_line
from .tunnel import NetworkTunnel, TunnelState

__version__ = "0.1.0"


__all__ = [
    # Lifecycle
    "NetworkTunnel",
    "TunnelState",
    "run",
    "run_and_cleanup",
    "signal_ready",
    "READY_SIGNAL",
    # SSH forwarding
    "SshForwarding",
    "build_command",
    "classify_line",
    # Configuration
    "NetworkTunnelConfig",
    "SshForwardingConfig",
    # Exceptions
    "NetworkTunnelError",
    "TunnelStartupError",
    "TunnelExitError",
    "CleanupError",
    "TunnelStateError",
    # Logging
    "get_logger",
    "setup_logging",
]
