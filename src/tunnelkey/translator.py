"""
Translation of key server responses into session configs.

A dynamic key server answers with one of:

- a bare ss:// static key
- {"error": {"message": ...}}
- a Shadowsocks document: {"method", "password", "server", "server_port", "prefix"?}
- a full Xray document: {"inbounds": [...], "outbounds": [{"settings": {"vnext": [{"address": ...}]}}]}
"""

import json
from typing import Any, Union

import structlog

from .errors import AccessKeyInvalid, MissingFieldsError, SessionConfigError
from .models import LOCAL_SOCKS_PORT, ShadowsocksSessionConfig, XraySessionConfig
from .shadowsocks import SHADOWSOCKS_URI_PREFIX
from .static import shadowsocks_key_to_session_config
from .vless import serialize_xray_document

logger = structlog.get_logger(__name__)

SHADOWSOCKS_REQUIRED_FIELDS = ("method", "password", "server", "server_port")


def shadowsocks_config_from_json(document: dict[str, Any]) -> ShadowsocksSessionConfig:
    """
    Build a Shadowsocks session config from a server JSON document.

    All mandatory fields are checked before failing so the error names
    every missing one.

    Raises:
        MissingFieldsError: If any mandatory field is absent
    """
    missing = [name for name in SHADOWSOCKS_REQUIRED_FIELDS if name not in document]
    if missing:
        raise MissingFieldsError(missing)

    return ShadowsocksSessionConfig(
        method=document["method"],
        password=document["password"],
        host=document["server"],
        port=document["server_port"],
        prefix=document.get("prefix"),
    )


def xray_config_from_json(document: dict[str, Any]) -> XraySessionConfig:
    """
    Build an Xray session config from a server JSON document.

    The document is forwarded as-is except for the first inbound's port,
    which is always pinned to the local SOCKS port. The document is
    modified in place.
    """
    host = document["outbounds"][0]["settings"]["vnext"][0]["address"]
    document["inbounds"][0]["port"] = LOCAL_SOCKS_PORT

    return XraySessionConfig(
        xray_config=serialize_xray_document(document),
        host=host,
    )


def _server_error_message(error: Any) -> str:
    if not isinstance(error, dict):
        raise TypeError(f"Server error must be an object, got {type(error).__name__}")
    return str(error.get("message", ""))


def session_config_from_response(
    body: str,
) -> Union[ShadowsocksSessionConfig, XraySessionConfig]:
    """
    Classify a trimmed response body and translate it into a session config.

    Raises:
        SessionConfigError: If the server declared an error
        AccessKeyInvalid: If the body cannot be understood, with the
            underlying failure attached as the cause
    """
    try:
        if body.startswith(SHADOWSOCKS_URI_PREFIX):
            logger.debug("Fetched body is a static key")
            return shadowsocks_key_to_session_config(body)

        document = json.loads(body)

        if "error" in document:
            raise SessionConfigError(_server_error_message(document["error"]))

        if "method" in document:
            logger.debug("Fetched body is a Shadowsocks document")
            return shadowsocks_config_from_json(document)

        logger.debug("Fetched body is an Xray document")
        return xray_config_from_json(document)

    except SessionConfigError:
        raise
    except MissingFieldsError as e:
        raise AccessKeyInvalid(
            "Failed to parse VPN information fetched from dynamic access key: "
            f"missing {', '.join(e.fields)}."
        ) from e
    except Exception as e:
        raise AccessKeyInvalid(
            "Failed to parse VPN information fetched from dynamic access key."
        ) from e
