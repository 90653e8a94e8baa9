"""
Static access keys.

A static key describes the server completely, so resolving it needs no I/O.
The key format is chosen by a literal prefix check only.
"""

from typing import Union

import structlog
from pydantic import ValidationError

from .errors import AccessKeyInvalid
from .models import ShadowsocksSessionConfig, XraySessionConfig
from .shadowsocks import ShadowsocksUriError, parse_shadowsocks_uri
from .vless import VLESS_URI_PREFIX, vless_key_to_session_config

logger = structlog.get_logger(__name__)


def shadowsocks_key_to_session_config(static_key: str) -> ShadowsocksSessionConfig:
    """
    Parse an ss:// access key into a Shadowsocks session config.

    Raises:
        AccessKeyInvalid: If the key cannot be decoded, with the parser
            failure attached as the cause
    """
    try:
        uri = parse_shadowsocks_uri(static_key)
        return ShadowsocksSessionConfig(
            host=uri.host,
            port=uri.port,
            method=uri.method,
            password=uri.password,
            prefix=uri.prefix,
        )
    except (ShadowsocksUriError, ValidationError) as e:
        logger.debug("Rejected Shadowsocks access key", reason=str(e))
        raise AccessKeyInvalid("Invalid static access key.") from e


def static_key_to_session_config(
    static_key: str,
) -> Union[ShadowsocksSessionConfig, XraySessionConfig]:
    """Resolve a static access key of either supported format."""
    if static_key.startswith(VLESS_URI_PREFIX):
        return vless_key_to_session_config(static_key)

    return shadowsocks_key_to_session_config(static_key)
