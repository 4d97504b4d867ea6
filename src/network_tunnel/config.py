"""Tunnel configuration models using Pydantic for validation."""

from typing import TYPE_CHECKING

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .utils import MAX_PORT, MIN_PORT, validate_non_empty_string

if TYPE_CHECKING:
    from .tunnel import NetworkTunnel


class SshForwardingConfig(BaseModel):
    """Parameters of a single SSH port-forwarding tunnel."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    ssh_endpoint: str = Field(
        description="Remote SSH server in the form ssh://user@hostname[:port]"
    )
    private_key: str = Field(description="Path to the private key file")
    forward_host: str = Field(description="Hostname of the remote destination")
    forward_port: int = Field(
        ge=MIN_PORT, le=MAX_PORT, description="Port of the remote destination"
    )
    local_port: int = Field(
        ge=MIN_PORT,
        le=MAX_PORT,
        description="Local port connected to the remote host/port",
    )

    @field_validator("ssh_endpoint", "private_key", "forward_host")
    @classmethod
    def validate_not_empty(cls, v: str, info: ValidationInfo) -> str:
        return validate_non_empty_string(v, info.field_name or "value")

    @property
    def forwarding_stanza(self) -> str:
        """The ``local_port:forward_host:forward_port`` mapping passed to ssh."""
        return f"{self.local_port}:{self.forward_host}:{self.forward_port}"


class NetworkTunnelConfig(BaseModel):
    """Tagged union of supported tunnel variants.

    Serialized as ``{"sshForwarding": {...}}``. Exactly one variant must be set.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    ssh_forwarding: SshForwardingConfig | None = None

    @model_validator(mode="after")
    def validate_variant(self) -> "NetworkTunnelConfig":
        if self.ssh_forwarding is None:
            raise ValueError("A tunnel variant must be configured")
        return self

    @classmethod
    def from_json(cls, data: str | bytes) -> "NetworkTunnelConfig":
        """Parse a JSON tunnel configuration document."""
        return cls.model_validate_json(data)

    def build(self, ssh_binary: str = "ssh") -> "NetworkTunnel":
        """Create the tunnel implementation for the configured variant.

        Args:
            ssh_binary: ssh executable used by SSH forwarding tunnels
        """
        from .sshforwarding import SshForwarding  # noqa: PLC0415

        if self.ssh_forwarding is not None:
            return SshForwarding(self.ssh_forwarding, ssh_binary=ssh_binary)
        raise ValueError("No tunnel variant configured")
