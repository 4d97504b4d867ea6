"""
Command line entry point.

Usage:
    flow-network-tunnel [OPTIONS] COMMAND [ARGS]...

Commands:
    ssh     Forward a local port through an SSH tunnel
    config  Run a tunnel described by a JSON configuration file

Example:
    flow-network-tunnel ssh --ssh-endpoint ssh://user@bastion \\
        --private-key ~/.ssh/id_rsa --forward-host db.internal \\
        --forward-port 5432 --local-port 5432
"""

import asyncio
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from .config import NetworkTunnelConfig, SshForwardingConfig
from .exceptions import NetworkTunnelError
from .logging import get_logger, setup_logging
from .runner import run
from .utils import MAX_PORT, MIN_PORT

logger = get_logger(__name__)

app = typer.Typer(
    name="flow-network-tunnel",
    help="Start a network tunnel and port-forward specific ports on the "
    "destination host through the tunnel.",
    no_args_is_help=True,
)


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


@app.callback()
def main(
    log_level: Annotated[
        LogLevel,
        typer.Option(
            "--log-level",
            help="Minimum level of log records to emit",
            envvar="NETWORK_TUNNEL_LOG_LEVEL",
            case_sensitive=False,
        ),
    ] = LogLevel.INFO,
    log_format: Annotated[
        LogFormat,
        typer.Option("--log-format", help="Log output format: text|json"),
    ] = LogFormat.TEXT,
):
    """Configure logging before any command runs."""
    setup_logging(
        level=log_level.value,
        json_format=log_format is LogFormat.JSON,
    )


def _execute(
    config: NetworkTunnelConfig | SshForwardingConfig, ssh_binary: str
) -> None:
    try:
        asyncio.run(run(config, ssh_binary=ssh_binary))
    except NetworkTunnelError as err:
        logger.error("network tunnel failed.", error=str(err))
        raise typer.Exit(1)


@app.command("ssh")
def ssh(
    ssh_endpoint: Annotated[
        str,
        typer.Option(
            help="Endpoint of the remote SSH server that supports tunneling, "
            "in the form of ssh://user@hostname[:port]"
        ),
    ],
    private_key: Annotated[
        str,
        typer.Option(
            help="Path to private key file to connect to the remote SSH server. "
            "Recommended permissions: 600."
        ),
    ],
    forward_host: Annotated[
        str,
        typer.Option(
            help="The hostname of the remote destination (e.g. the database server)."
        ),
    ],
    forward_port: Annotated[
        int,
        typer.Option(
            min=MIN_PORT,
            max=MAX_PORT,
            help="The port of the remote destination (e.g. the database server).",
        ),
    ],
    local_port: Annotated[
        int,
        typer.Option(
            min=MIN_PORT,
            max=MAX_PORT,
            help="The local port which will be connected to the remote host/port "
            "over an SSH tunnel.",
        ),
    ],
    ssh_binary: Annotated[
        str, typer.Option(help="ssh executable to run", hidden=True)
    ] = "ssh",
):
    """Forward a local port to a remote host through an SSH tunnel."""
    try:
        config = SshForwardingConfig(
            ssh_endpoint=ssh_endpoint,
            private_key=private_key,
            forward_host=forward_host,
            forward_port=forward_port,
            local_port=local_port,
        )
    except ValidationError as err:
        logger.error("invalid tunnel configuration", error=str(err))
        raise typer.Exit(1)

    _execute(config, ssh_binary)


@app.command("config")
def from_config(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            dir_okay=False,
            readable=True,
            help='JSON document such as {"sshForwarding": {...}}',
        ),
    ],
    ssh_binary: Annotated[
        str, typer.Option(help="ssh executable to run", hidden=True)
    ] = "ssh",
):
    """Run a tunnel described by a JSON configuration file."""
    try:
        config = NetworkTunnelConfig.from_json(path.read_bytes())
    except ValidationError as err:
        logger.error("invalid tunnel configuration", path=str(path), error=str(err))
        raise typer.Exit(1)

    _execute(config, ssh_binary)


def run_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run_cli()
