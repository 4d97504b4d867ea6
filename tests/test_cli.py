"""Tests for the command line interface."""

import json
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from network_tunnel.cli import app
from network_tunnel.config import NetworkTunnelConfig, SshForwardingConfig
from network_tunnel.exceptions import TunnelExitError

runner = CliRunner()

SSH_ARGS = [
    "ssh",
    "--ssh-endpoint",
    "ssh://u@h",
    "--private-key",
    "/k",
    "--forward-host",
    "db.internal",
    "--forward-port",
    "5432",
    "--local-port",
    "5432",
]


@pytest.fixture
def mock_run():
    with patch("network_tunnel.cli.run", new=AsyncMock(return_value=None)) as mocked:
        yield mocked


class TestSshCommand:
    def test_runs_tunnel(self, mock_run):
        """Options are turned into an SshForwardingConfig"""
        result = runner.invoke(app, SSH_ARGS)

        assert result.exit_code == 0
        mock_run.assert_awaited_once()
        config = mock_run.call_args.args[0]
        assert isinstance(config, SshForwardingConfig)
        assert config.ssh_endpoint == "ssh://u@h"
        assert config.forwarding_stanza == "5432:db.internal:5432"
        assert mock_run.call_args.kwargs["ssh_binary"] == "ssh"

    def test_tunnel_failure_exits_non_zero(self, mock_run):
        mock_run.side_effect = TunnelExitError("255")

        with patch("network_tunnel.cli.logger") as mock_logger:
            result = runner.invoke(app, SSH_ARGS)

        assert result.exit_code == 1
        mock_logger.error.assert_called_once()
        assert "network tunnel failed." in str(mock_logger.error.call_args)

    def test_port_out_of_range(self, mock_run):
        args = SSH_ARGS[:-1] + ["70000"]

        result = runner.invoke(app, args)

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_missing_option(self, mock_run):
        result = runner.invoke(app, SSH_ARGS[:-2])

        assert result.exit_code == 2
        mock_run.assert_not_called()

    def test_blank_host_rejected(self, mock_run):
        args = list(SSH_ARGS)
        args[args.index("db.internal")] = " "

        result = runner.invoke(app, args)

        assert result.exit_code == 1
        mock_run.assert_not_called()

    def test_log_options(self, mock_run):
        with patch("network_tunnel.cli.setup_logging") as mock_setup:
            result = runner.invoke(
                app, ["--log-level", "DEBUG", "--log-format", "json", *SSH_ARGS]
            )

        assert result.exit_code == 0
        mock_setup.assert_called_once_with(level="debug", json_format=True)

    def test_log_level_from_env(self, mock_run):
        with patch("network_tunnel.cli.setup_logging") as mock_setup:
            result = runner.invoke(
                app, SSH_ARGS, env={"NETWORK_TUNNEL_LOG_LEVEL": "warning"}
            )

        assert result.exit_code == 0
        mock_setup.assert_called_once_with(level="warning", json_format=False)


class TestConfigCommand:
    def test_runs_tunnel_from_file(self, tmp_path, mock_run):
        path = tmp_path / "tunnel.json"
        path.write_text(
            json.dumps(
                {
                    "sshForwarding": {
                        "sshEndpoint": "ssh://u@h",
                        "privateKey": "/k",
                        "forwardHost": "db.internal",
                        "forwardPort": 5432,
                        "localPort": 6543,
                    }
                }
            )
        )

        result = runner.invoke(app, ["config", str(path)])

        assert result.exit_code == 0
        config = mock_run.call_args.args[0]
        assert isinstance(config, NetworkTunnelConfig)
        assert config.ssh_forwarding.local_port == 6543

    def test_invalid_file(self, tmp_path, mock_run):
        path = tmp_path / "tunnel.json"
        path.write_text('{"sshForwarding": {"sshEndpoint": "ssh://u@h"}}')

        result = runner.invoke(app, ["config", str(path)])

        assert result.exit_code == 1
        mock_run.assert_not_called()

    def test_missing_file(self, tmp_path, mock_run):
        result = runner.invoke(app, ["config", str(tmp_path / "missing.json")])

        assert result.exit_code == 2
        mock_run.assert_not_called()
