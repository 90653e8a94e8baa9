"""
Tests for dynamic access key fetching.
"""

import aiohttp
import pytest
from aiohttp_socks import ProxyConnector
from yarl import URL

from tunnelkey.core.config import FetchSettings
from tunnelkey.errors import AccessKeyInvalid, SessionConfigError, SessionConfigFetchFailed
from tunnelkey.fetcher import (
    AiohttpFetcher,
    fetch_session_config,
    normalize_config_location,
)
from tunnelkey.models import ShadowsocksSessionConfig, XraySessionConfig
from tunnelkey.platform_info import GenericPlatformInfo, MacOSPlatformInfo

SS_KEY = "ss://YWVzLTI1Ni1nY206c2VjcmV0@example.com:443"
SS_JSON = '{"method":"aes-256-gcm","password":"p","server":"1.2.3.4","server_port":8388}'


class FailingFetcher:
    """Fetcher whose request always fails at the transport level."""

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def fetch_text(self, url, headers):
        self.calls += 1
        raise self.error


class TestNormalizeConfigLocation:
    """Tests for URL normalization."""

    @pytest.mark.parametrize("location", [
        "xray://keys.example.com/abc",
        "ssconf://keys.example.com/abc",
        "https://keys.example.com/abc",
    ])
    def test_aliases_become_https(self, location):
        """Test that scheme aliases are rewritten to https."""
        url = normalize_config_location(location)
        assert url.scheme == "https"
        assert url.host == "keys.example.com"
        assert url.path == "/abc"

    def test_format_tag_appended(self):
        """Test that type=1 is appended after existing parameters."""
        url = normalize_config_location("https://keys.example.com/abc?id=5")
        assert list(url.query.items()) == [("id", "5"), ("type", "1")]

    def test_existing_type_kept(self):
        """Test that the tag is appended rather than replacing."""
        url = normalize_config_location("https://keys.example.com/abc?type=0")
        assert url.query.getall("type") == ["0", "1"]

    def test_no_user_agent_param(self):
        """Test that no user agent is smuggled into the query string."""
        url = normalize_config_location("ssconf://keys.example.com/abc")
        assert "ua" not in url.query

    def test_accepts_url_objects(self):
        """Test that yarl URLs are accepted."""
        url = normalize_config_location(URL("xray://keys.example.com/abc"))
        assert str(url) == "https://keys.example.com/abc?type=1"


class TestAiohttpFetcher:
    """Tests for the aiohttp transport."""

    @pytest.mark.asyncio
    async def test_fetch_text(self, key_server):
        """Test fetching a body."""
        key_server.responses["plain"] = (200, "hello")
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            body = await fetcher.fetch_text(URL(key_server.url("/keys/plain")), {})
        assert body == "hello"

    @pytest.mark.asyncio
    async def test_follows_redirects(self, key_server):
        """Test that redirects are followed."""
        key_server.responses["plain"] = (200, "moved")
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            body = await fetcher.fetch_text(URL(key_server.url("/redirect/plain")), {})
        assert body == "moved"
        assert len(key_server.requests) == 2

    @pytest.mark.asyncio
    async def test_proxy_connector(self):
        """Test that a proxy URL routes the session through a ProxyConnector."""
        fetcher = AiohttpFetcher(FetchSettings(proxy_url="socks5://127.0.0.1:9050"))
        session = fetcher._create_session()
        try:
            assert isinstance(session.connector, ProxyConnector)
        finally:
            await session.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        """Test closing a fetcher that never opened a session."""
        fetcher = AiohttpFetcher(FetchSettings())
        await fetcher.close()
        await fetcher.close()


class TestFetchSessionConfig:
    """Tests for the fetch-then-translate flow."""

    @pytest.mark.asyncio
    async def test_static_body(self, key_server, environment):
        """Test a server answering with an ss:// key."""
        key_server.responses["ss"] = (200, f"\n  {SS_KEY}  \n")
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            config = await fetch_session_config(
                key_server.url("/keys/ss"),
                fetcher=fetcher,
                platform=GenericPlatformInfo("Linux", "6.1"),
                environment=environment,
            )
        assert isinstance(config, ShadowsocksSessionConfig)
        assert config.host == "example.com"
        assert key_server.requests[0].query.getall("type") == ["1"]

    @pytest.mark.asyncio
    async def test_xray_body(self, key_server, environment):
        """Test a server answering with an Xray document."""
        key_server.responses["xray"] = (
            200,
            '{"inbounds":[{"port":1}],"outbounds":[{"settings":{"vnext":[{"address":"h.example"}]}}]}',
        )
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            config = await fetch_session_config(
                key_server.url("/keys/xray"),
                fetcher=fetcher,
                platform=GenericPlatformInfo(),
                environment=environment,
            )
        assert isinstance(config, XraySessionConfig)
        assert config.host == "h.example"

    @pytest.mark.asyncio
    async def test_non_success_status_accepted(self, key_server, environment):
        """Test that a non-2xx response with a usable body still resolves."""
        key_server.responses["gone"] = (404, SS_JSON)
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            config = await fetch_session_config(
                key_server.url("/keys/gone"),
                fetcher=fetcher,
                platform=GenericPlatformInfo(),
                environment=environment,
            )
        assert config.port == 8388

    @pytest.mark.asyncio
    async def test_server_error(self, key_server, environment):
        """Test that a server-declared error surfaces as SessionConfigError."""
        key_server.responses["quota"] = (200, '{"error":{"message":"quota exceeded"}}')
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            with pytest.raises(SessionConfigError) as exc_info:
                await fetch_session_config(
                    key_server.url("/keys/quota"),
                    fetcher=fetcher,
                    platform=GenericPlatformInfo(),
                    environment=environment,
                )
        assert exc_info.value.message == "quota exceeded"

    @pytest.mark.asyncio
    async def test_macos_user_agent(self, key_server, environment):
        """Test that macOS requests carry the product User-Agent."""
        key_server.responses["ss"] = (200, SS_KEY)
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            await fetch_session_config(
                key_server.url("/keys/ss"),
                fetcher=fetcher,
                platform=MacOSPlatformInfo("14.2"),
                environment=environment,
                user_agent_product="TunnelKey",
            )
        assert key_server.requests[0].headers["User-Agent"] == "TunnelKey/9.9.9 (macOS/14.2)"

    @pytest.mark.asyncio
    async def test_detected_platform_used_by_default(self, key_server, environment, monkeypatch):
        """Test that the detected platform supplies headers when none is given."""
        monkeypatch.setattr("tunnelkey.fetcher.detect_platform", lambda: MacOSPlatformInfo("13.1"))
        key_server.responses["ss"] = (200, SS_KEY)
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            await fetch_session_config(
                key_server.url("/keys/ss"),
                fetcher=fetcher,
                environment=environment,
                user_agent_product="TunnelKey",
            )
        assert key_server.requests[0].headers["User-Agent"] == "TunnelKey/9.9.9 (macOS/13.1)"

    @pytest.mark.asyncio
    async def test_other_platforms_no_custom_user_agent(self, key_server, environment):
        """Test that non-macOS requests keep the transport's default User-Agent."""
        key_server.responses["ss"] = (200, SS_KEY)
        async with AiohttpFetcher(FetchSettings()) as fetcher:
            await fetch_session_config(
                key_server.url("/keys/ss"),
                fetcher=fetcher,
                platform=GenericPlatformInfo("Windows", "10"),
                environment=environment,
                user_agent_product="TunnelKey",
            )
        assert not key_server.requests[0].headers.get("User-Agent", "").startswith("TunnelKey")

    @pytest.mark.asyncio
    async def test_transport_failure_wrapped(self, environment):
        """Test that request failures become SessionConfigFetchFailed."""
        error = aiohttp.ClientConnectionError("connection refused")
        fetcher = FailingFetcher(error)
        with pytest.raises(SessionConfigFetchFailed) as exc_info:
            await fetch_session_config(
                "https://keys.example.com/abc",
                fetcher=fetcher,
                platform=GenericPlatformInfo(),
                environment=environment,
            )
        assert exc_info.value.__cause__ is error
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self, environment):
        """Test that timeouts become SessionConfigFetchFailed."""
        fetcher = FailingFetcher(TimeoutError())
        with pytest.raises(SessionConfigFetchFailed):
            await fetch_session_config(
                "https://keys.example.com/abc",
                fetcher=fetcher,
                platform=GenericPlatformInfo(),
                environment=environment,
            )
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_unreachable_server(self, environment):
        """Test a real connection failure through aiohttp."""
        async with AiohttpFetcher(FetchSettings(timeout=5)) as fetcher:
            with pytest.raises(SessionConfigFetchFailed) as exc_info:
                await fetch_session_config(
                    "http://127.0.0.1:1/keys/none",
                    fetcher=fetcher,
                    platform=GenericPlatformInfo(),
                    environment=environment,
                )
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)

    @pytest.mark.asyncio
    async def test_invalid_location(self, environment):
        """Test that an unparseable location is an invalid key."""
        fetcher = FailingFetcher(AssertionError("should not be called"))
        with pytest.raises(AccessKeyInvalid):
            await fetch_session_config(
                "https://[::1",
                fetcher=fetcher,
                platform=GenericPlatformInfo(),
                environment=environment,
            )
        assert fetcher.calls == 0
