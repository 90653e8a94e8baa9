"""
Shadowsocks URI parsing.

Supports both URI layouts found in the wild:

- SIP002: ss://<base64url(method:password)>@host:port/?plugin=...#tag
  (the user info may also be plain percent-encoded method:password)
- Legacy: ss://<base64(method:password@host:port)>#tag

Query parameters other than ``plugin`` are kept in ``extra``; Outline-style
servers put the connection ``prefix`` there.
"""

import base64
import binascii
import ipaddress
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import unquote

SHADOWSOCKS_URI_PREFIX = "ss://"

KNOWN_METHODS = frozenset({
    "rc4-md5",
    "aes-128-gcm",
    "aes-192-gcm",
    "aes-256-gcm",
    "aes-128-cfb",
    "aes-192-cfb",
    "aes-256-cfb",
    "aes-128-ctr",
    "aes-192-ctr",
    "aes-256-ctr",
    "camellia-128-cfb",
    "camellia-192-cfb",
    "camellia-256-cfb",
    "bf-cfb",
    "chacha20-ietf-poly1305",
    "xchacha20-ietf-poly1305",
    "salsa20",
    "chacha20",
    "chacha20-ietf",
    "2022-blake3-aes-128-gcm",
    "2022-blake3-aes-256-gcm",
    "2022-blake3-chacha20-poly1305",
})

_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}\.?$)"
    r"[A-Za-z0-9_](?:[A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?"
    r"(?:\.[A-Za-z0-9_](?:[A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?)*\.?$"
)
_PORT_RE = re.compile(r"^[0-9]{1,5}$")


class ShadowsocksUriError(ValueError):
    """Raised when a Shadowsocks URI cannot be parsed."""
    pass


@dataclass(frozen=True)
class ShadowsocksUri:
    """Decoded contents of an ss:// URI."""
    method: str
    password: str
    host: str
    port: int
    tag: Optional[str] = None
    plugin: Optional[str] = None
    extra: dict[str, str] = field(default_factory=dict)

    @property
    def prefix(self) -> Optional[str]:
        return self.extra.get("prefix")


def _b64decode(data: str) -> str:
    """Decode standard or URL-safe base64 with optional padding."""
    text = data.strip().replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ShadowsocksUriError("Invalid base64 encoding") from e


def _validate_host(host: str) -> str:
    if not host:
        raise ShadowsocksUriError("Missing host")
    try:
        ipaddress.IPv4Address(host)
        return host
    except ValueError:
        pass
    if not _HOSTNAME_RE.match(host):
        raise ShadowsocksUriError(f"Invalid host: {host!r}")
    return host


def _parse_port(port: str) -> int:
    if not _PORT_RE.match(port):
        raise ShadowsocksUriError(f"Invalid port: {port!r}")
    value = int(port)
    if not 1 <= value <= 65535:
        raise ShadowsocksUriError(f"Port out of range: {value}")
    return value


def _parse_host_port(text: str) -> tuple[str, int]:
    """Split ``host:port``, accepting bracketed IPv6 literals."""
    if text.startswith("["):
        end = text.find("]")
        if end == -1 or text[end + 1:end + 2] != ":":
            raise ShadowsocksUriError("Invalid IPv6 address")
        host = text[1:end]
        try:
            ipaddress.IPv6Address(host)
        except ValueError as e:
            raise ShadowsocksUriError(f"Invalid IPv6 address: {host!r}") from e
        return host, _parse_port(text[end + 2:])

    host, sep, port = text.rpartition(":")
    if not sep:
        raise ShadowsocksUriError("Missing port")
    return _validate_host(host), _parse_port(port)


def _parse_credentials(text: str) -> tuple[str, str]:
    method, sep, password = text.partition(":")
    if not sep:
        raise ShadowsocksUriError("Missing method or password")
    if method not in KNOWN_METHODS:
        raise ShadowsocksUriError(f"Unsupported cipher method: {method!r}")
    if not password:
        raise ShadowsocksUriError("Missing password")
    return method, password


def _split_query(query: str) -> list[tuple[str, str]]:
    """Split a query string, percent-decoding without treating + as a space."""
    pairs = []
    for part in query.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        try:
            pairs.append((unquote(key, errors="strict"), unquote(value, errors="strict")))
        except UnicodeDecodeError as e:
            raise ShadowsocksUriError("Invalid query string") from e
    return pairs


def _parse_query(query: str) -> tuple[Optional[str], dict[str, str]]:
    plugin = None
    extra: dict[str, str] = {}
    for key, value in _split_query(query):
        if key == "plugin":
            plugin = plugin or value
        else:
            extra.setdefault(key, value)
    return plugin, extra


def _parse_sip002(body: str, tag: Optional[str]) -> ShadowsocksUri:
    userinfo, _, rest = body.rpartition("@")
    location, _, query = rest.partition("?")
    location, _, path = location.partition("/")
    if path:
        raise ShadowsocksUriError("Unexpected path in URI")

    decoded = unquote(userinfo)
    if ":" not in decoded:
        decoded = _b64decode(decoded)

    method, password = _parse_credentials(decoded)
    host, port = _parse_host_port(location)
    plugin, extra = _parse_query(query)

    return ShadowsocksUri(
        method=method,
        password=password,
        host=host,
        port=port,
        tag=tag,
        plugin=plugin,
        extra=extra,
    )


def _parse_legacy(body: str, tag: Optional[str]) -> ShadowsocksUri:
    encoded, _, query = body.partition("?")
    decoded = _b64decode(encoded)
    credentials, sep, location = decoded.rpartition("@")
    if not sep:
        raise ShadowsocksUriError("Missing host")

    method, password = _parse_credentials(credentials)
    host, port = _parse_host_port(location)
    plugin, extra = _parse_query(query)

    return ShadowsocksUri(
        method=method,
        password=password,
        host=host,
        port=port,
        tag=tag,
        plugin=plugin,
        extra=extra,
    )


def parse_shadowsocks_uri(uri: str) -> ShadowsocksUri:
    """
    Parse an ss:// URI.

    Args:
        uri: The URI to parse

    Returns:
        The decoded URI fields

    Raises:
        ShadowsocksUriError: If the URI is malformed or a field is invalid
    """
    if not uri.startswith(SHADOWSOCKS_URI_PREFIX):
        raise ShadowsocksUriError(f"URI must start with {SHADOWSOCKS_URI_PREFIX}")

    body, _, fragment = uri[len(SHADOWSOCKS_URI_PREFIX):].partition("#")
    tag = unquote(fragment) or None
    if not body:
        raise ShadowsocksUriError("Empty URI")

    if "@" in body:
        return _parse_sip002(body, tag)
    return _parse_legacy(body, tag)
