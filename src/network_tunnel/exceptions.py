"""Custom exceptions for network tunnels."""


class NetworkTunnelError(Exception):
    """Base exception for all network tunnel errors."""
    pass


class TunnelStartupError(NetworkTunnelError):
    """Raised when the tunnel process cannot be started."""
    pass


class TunnelExitError(NetworkTunnelError):
    """Raised when the tunnel process exits with a non-zero status."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(
            f"SSH forwarding network tunnel exit with non-zero exit code {status}"
        )


class CleanupError(NetworkTunnelError):
    """Raised when the tunnel process cannot be terminated."""
    pass


class TunnelStateError(NetworkTunnelError):
    """Raised when a lifecycle operation is called out of order."""
    pass
