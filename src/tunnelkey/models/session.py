"""
Session configuration models.

A resolved access key is one of two immutable variants, tagged by ``kind``
so consumers can dispatch without inspecting field shapes.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ShadowsocksSessionConfig(BaseModel):
    """Connection parameters for a Shadowsocks proxy."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["shadowsocks"] = "shadowsocks"
    host: str = Field(
        ...,
        min_length=1,
        description="Proxy server host"
    )
    port: int = Field(
        ...,
        ge=1,
        le=65535,
        description="Proxy server port"
    )
    method: str = Field(
        ...,
        min_length=1,
        description="Cipher method"
    )
    password: str = Field(
        ...,
        min_length=1,
        description="Cipher password"
    )
    prefix: Optional[str] = Field(
        default=None,
        description="Bytes sent before the first payload to disguise the stream"
    )


class XraySessionConfig(BaseModel):
    """Serialized Xray transport document plus the remote host it targets."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["xray"] = "xray"
    xray_config: str = Field(
        ...,
        min_length=1,
        description="Xray configuration as a JSON string"
    )
    host: str = Field(
        ...,
        description="Remote server host"
    )


SessionConfig = Annotated[
    Union[ShadowsocksSessionConfig, XraySessionConfig],
    Field(discriminator="kind"),
]
