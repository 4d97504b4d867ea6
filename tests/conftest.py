"""Shared pytest fixtures for network tunnel tests."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from network_tunnel.config import SshForwardingConfig


@pytest.fixture
def ssh_config():
    """A complete SSH forwarding configuration.

    Returns:
        SshForwardingConfig: Config forwarding local 5432 to db.internal:5432
    """
    return SshForwardingConfig(
        ssh_endpoint="ssh://u@h",
        private_key="/k",
        forward_host="db.internal",
        forward_port=5432,
        local_port=5432,
    )


@pytest.fixture
def make_process():
    """Factory for mock ssh processes with scripted stderr output.

    Must be called from inside a running event loop because the stderr
    stream is a real asyncio.StreamReader.

    Returns:
        Callable: (lines, returncode=0, eof=True) -> Mock process
    """

    def _make(lines=(), returncode=0, eof=True):
        stderr = asyncio.StreamReader()
        for line in lines:
            stderr.feed_data(f"{line}\n".encode())
        if eof:
            stderr.feed_eof()

        process = Mock()
        process.pid = 12345
        process.stderr = stderr
        process.returncode = None
        process.wait = AsyncMock(return_value=returncode)
        process.kill = Mock(return_value=None)
        return process

    return _make
