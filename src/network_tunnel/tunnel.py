"""Lifecycle contract shared by all network tunnel implementations."""

from abc import ABC, abstractmethod
from enum import Enum
from types import TracebackType
from typing import Literal

from .exceptions import TunnelStateError
from .logging import get_logger

logger = get_logger(__name__)


class TunnelState(str, Enum):
    """Tunnel lifecycle state enumeration."""

    UNSTARTED = "unstarted"
    STARTING = "starting"
    READY = "ready"
    SERVING = "serving"
    TERMINATED = "terminated"
    CLEANED_UP = "cleaned_up"


class NetworkTunnel(ABC):
    """A tunnel driven through ``prepare`` -> ``serve`` -> ``cleanup``.

    Instances are single use. ``prepare`` may only run on a fresh tunnel and
    ``serve`` only after a successful ``prepare``; ``cleanup`` is legal in
    every state and must tolerate being called more than once.
    """

    def __init__(self) -> None:
        self._state = TunnelState.UNSTARTED

    @property
    def state(self) -> TunnelState:
        """Current lifecycle state"""
        return self._state

    def _transition(self, state: TunnelState) -> None:
        logger.debug("Tunnel state changed", old=self._state.value, new=state.value)
        self._state = state

    def _require_state(self, operation: str, *allowed: TunnelState) -> None:
        """Raise TunnelStateError unless the tunnel is in one of ``allowed``."""
        if self._state not in allowed:
            raise TunnelStateError(
                f"Cannot {operation} tunnel in state {self._state.value}"
            )

    @abstractmethod
    async def prepare(self) -> None:
        """Set up the tunnel so it accepts traffic once this returns.

        Raises:
            TunnelStartupError: If the tunnel mechanism cannot be established
            TunnelStateError: If the tunnel was already prepared
        """

    @abstractmethod
    async def serve(self) -> None:
        """Block until the tunnel terminates on its own.

        Raises:
            TunnelExitError: If the tunnel did not exit cleanly
            TunnelStateError: If the tunnel is not ready
        """

    @abstractmethod
    async def cleanup(self) -> None:
        """Release everything acquired by prepare/serve.

        Raises:
            CleanupError: If a resource could not be released
        """

    async def __aenter__(self) -> "NetworkTunnel":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> Literal[False]:
        """Run cleanup on every exit path.

        A cleanup failure is raised only when the block itself succeeded;
        otherwise it is logged and the original exception propagates.
        """
        try:
            await self.cleanup()
        except Exception as cleanup_exc:
            if exc_val is None:
                raise
            logger.error(
                "Tunnel cleanup failed",
                error=str(cleanup_exc),
                original_error=repr(exc_val),
            )
        return False
