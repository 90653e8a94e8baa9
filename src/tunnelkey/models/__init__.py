"""
TunnelKey Domain Models

Strongly typed Pydantic models for resolved session configurations.
"""

from .session import (
    ShadowsocksSessionConfig,
    XraySessionConfig,
    SessionConfig,
)
from .xray import (
    LOCAL_SOCKS_HOST,
    LOCAL_SOCKS_PORT,
    Inbound,
    Outbound,
    OutboundSettings,
    RealitySettings,
    StreamSettings,
    VlessUser,
    VnextServer,
    XrayConfig,
)

__all__ = [
    # Session models
    "ShadowsocksSessionConfig",
    "XraySessionConfig",
    "SessionConfig",
    # Xray document models
    "LOCAL_SOCKS_HOST",
    "LOCAL_SOCKS_PORT",
    "Inbound",
    "Outbound",
    "OutboundSettings",
    "RealitySettings",
    "StreamSettings",
    "VlessUser",
    "VnextServer",
    "XrayConfig",
]
