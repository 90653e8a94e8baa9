"""
TunnelKey - Access Key Resolution for Tunnel Clients

Turns user-supplied access keys into session configs:
- Static Shadowsocks keys (ss://)
- Static VLESS keys (vless://), including Reality
- Dynamic keys fetched from a key server (https://, ssconf://, xray://)
"""

__version__ = "1.0.0"
__author__ = "TunnelKey Team"

from .errors import (
    AccessKeyError,
    AccessKeyInvalid,
    MissingFieldsError,
    SessionConfigError,
    SessionConfigFetchFailed,
)
from .models import ShadowsocksSessionConfig, XraySessionConfig, SessionConfig
from .static import static_key_to_session_config
from .fetcher import AiohttpFetcher, fetch_session_config
from .resolver import AccessKeyResolver, is_dynamic_access_key, resolve_access_key

__all__ = [
    "AccessKeyError",
    "AccessKeyInvalid",
    "MissingFieldsError",
    "SessionConfigError",
    "SessionConfigFetchFailed",
    "ShadowsocksSessionConfig",
    "XraySessionConfig",
    "SessionConfig",
    "static_key_to_session_config",
    "AiohttpFetcher",
    "fetch_session_config",
    "AccessKeyResolver",
    "is_dynamic_access_key",
    "resolve_access_key",
]
