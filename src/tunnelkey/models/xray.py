"""
Xray transport document models.

Only the subset of the Xray configuration schema that a ``vless://`` key
can express is modelled. Field names follow the Xray JSON keys through
camelCase aliases; optional fields left as None are dropped on dump.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

# Port of the local SOCKS listener the tunnel layer connects to.
LOCAL_SOCKS_PORT = 12080
LOCAL_SOCKS_HOST = "127.0.0.1"


class XrayModel(BaseModel):
    """Base for Xray document fragments."""

    model_config = ConfigDict(populate_by_name=True)


class InboundSettings(XrayModel):
    udp: bool = True


class Inbound(XrayModel):
    """Local SOCKS listener."""
    port: int = Field(default=LOCAL_SOCKS_PORT, ge=1, le=65535)
    listen: str = LOCAL_SOCKS_HOST
    protocol: str = "socks"
    settings: InboundSettings = Field(default_factory=InboundSettings)


class VlessUser(XrayModel):
    id: str = Field(..., min_length=1)
    encryption: str = "none"
    flow: Optional[str] = None


class VnextServer(XrayModel):
    address: str = Field(..., min_length=1)
    port: int = Field(..., ge=0, le=65535)
    users: list[VlessUser]


class OutboundSettings(XrayModel):
    vnext: list[VnextServer]


class RealitySettings(XrayModel):
    """Reality handshake parameters."""
    public_key: str = Field(..., alias="publicKey", min_length=1)
    short_id: str = Field(default="", alias="shortId")
    fingerprint: str = "random"
    server_name: str = Field(..., alias="serverName", min_length=1)
    spider_x: str = Field(default="", alias="spiderX")


class StreamSettings(XrayModel):
    network: str = "tcp"
    security: str = "none"
    reality_settings: Optional[RealitySettings] = Field(default=None, alias="realitySettings")


class Outbound(XrayModel):
    protocol: str = "vless"
    settings: OutboundSettings
    stream_settings: StreamSettings = Field(
        default_factory=StreamSettings,
        alias="streamSettings"
    )


class XrayConfig(XrayModel):
    """
    Complete transport document built from a static key.

    Always one inbound and one outbound.
    """
    inbounds: list[Inbound] = Field(..., min_length=1, max_length=1)
    outbounds: list[Outbound] = Field(..., min_length=1, max_length=1)

    def to_document(self) -> dict[str, Any]:
        """Return the document as plain JSON-compatible data."""
        return self.model_dump(by_alias=True, exclude_none=True)
