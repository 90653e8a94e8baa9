"""
VLESS access key parsing.

Turns a ``vless://`` key into an Xray transport document:

    vless://UUID@HOST:PORT?type=tcp&security=reality&pbk=...&sni=...&sid=...&fp=...&spx=...&flow=...#name
"""

import json
from typing import Optional
from urllib.parse import parse_qsl, unquote, urlsplit

import structlog

from .errors import AccessKeyInvalid
from .models import (
    Inbound,
    Outbound,
    OutboundSettings,
    RealitySettings,
    StreamSettings,
    VlessUser,
    VnextServer,
    XrayConfig,
    XraySessionConfig,
)

logger = structlog.get_logger(__name__)

VLESS_URI_PREFIX = "vless://"

SECURITY_REALITY = "reality"


def serialize_xray_document(document: dict) -> str:
    """Serialize a transport document in compact JSON form."""
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def _first_params(query: str) -> dict[str, str]:
    params: dict[str, str] = {}
    for key, value in parse_qsl(query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def _reality_settings(params: dict[str, str]) -> RealitySettings:
    public_key = params.get("pbk")
    server_name = params.get("sni")
    if not public_key or not server_name:
        raise AccessKeyInvalid("VLESS reality settings require pbk and sni parameters.")

    return RealitySettings(
        public_key=public_key,
        short_id=params.get("sid", ""),
        fingerprint=params.get("fp", "random"),
        server_name=server_name,
        spider_x=params.get("spx", ""),
    )


def vless_key_to_session_config(access_key: str) -> XraySessionConfig:
    """
    Parse a vless:// access key into an Xray session config.

    Args:
        access_key: The vless:// key

    Returns:
        XraySessionConfig holding the serialized document and remote host

    Raises:
        AccessKeyInvalid: If the key is malformed or incomplete
    """
    try:
        url = urlsplit(access_key)
        username = url.username
        host = url.hostname
    except ValueError as e:
        raise AccessKeyInvalid("Invalid VLESS access key.") from e

    try:
        uuid = unquote(username or "", errors="strict")
    except UnicodeDecodeError as e:
        raise AccessKeyInvalid("VLESS access key is missing a UUID.") from e
    if not uuid:
        raise AccessKeyInvalid("VLESS access key is missing a UUID.")

    try:
        port: Optional[int] = url.port
    except ValueError as e:
        raise AccessKeyInvalid("VLESS access key is missing a host or port.") from e
    if not host or port is None:
        raise AccessKeyInvalid("VLESS access key is missing a host or port.")

    params = _first_params(url.query)
    network = params.get("type", "tcp")
    security = params.get("security", "none")
    # An empty flow is treated the same as an absent one
    flow = params.get("flow") or None

    reality = _reality_settings(params) if security == SECURITY_REALITY else None
    stream_settings = StreamSettings(
        network=network,
        security=security,
        reality_settings=reality,
    )

    config = XrayConfig(
        inbounds=[Inbound()],
        outbounds=[
            Outbound(
                settings=OutboundSettings(
                    vnext=[
                        VnextServer(
                            address=host,
                            port=port,
                            users=[VlessUser(id=uuid, flow=flow)],
                        )
                    ]
                ),
                stream_settings=stream_settings,
            )
        ],
    )

    logger.debug(
        "Parsed VLESS access key",
        host=host,
        port=port,
        network=network,
        security=security,
    )

    return XraySessionConfig(
        xray_config=serialize_xray_document(config.to_document()),
        host=host,
    )
