"""
Dynamic access key fetching.

A dynamic key is a URL pointing at a key server. The server is asked once
for the session parameters; its answer is handed to the translator.
"""

import asyncio
from typing import Mapping, Optional, Protocol, Union

import aiohttp
import structlog
from aiohttp_socks import ProxyConnector
from yarl import URL

from .core.config import FetchSettings, get_settings
from .environment import EnvironmentProvider, default_environment
from .errors import AccessKeyInvalid, SessionConfigFetchFailed
from .models import ShadowsocksSessionConfig, XraySessionConfig
from .platform_info import PlatformInfo, detect_platform
from .translator import session_config_from_response

logger = structlog.get_logger(__name__)

# Scheme aliases that must be fetched over HTTPS, checked in order
SCHEME_ALIASES = (
    ("xray://", "https://"),
    ("ssconf://", "https://"),
)

# Tells the key server which response format the client understands
RESPONSE_FORMAT_PARAM = ("type", "1")

# Request-level failures; HTTP status codes are not inspected
FETCH_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


def normalize_config_location(location: Union[str, URL]) -> URL:
    """
    Rewrite scheme aliases to https:// and append the response format tag.

    Args:
        location: Dynamic access key URL

    Returns:
        The URL to request
    """
    text = str(location)
    for alias, scheme in SCHEME_ALIASES:
        if text.startswith(alias):
            text = scheme + text[len(alias):]
            break

    url = URL(text)
    return url.with_query(list(url.query.items()) + [RESPONSE_FORMAT_PARAM])


class Fetcher(Protocol):
    """Performs a single GET and returns the response body as text."""

    async def fetch_text(self, url: URL, headers: Mapping[str, str]) -> str:
        ...


class AiohttpFetcher:
    """
    Fetcher backed by an aiohttp client session.

    Redirects are followed, nothing is cached, and requests can optionally
    be routed through an upstream SOCKS or HTTP proxy.
    """

    def __init__(self, settings: Optional[FetchSettings] = None):
        """
        Initialize the fetcher.

        Args:
            settings: Fetch settings (uses application settings if not provided)
        """
        self.settings = settings or get_settings().fetch
        self._session: Optional[aiohttp.ClientSession] = None

    def _create_session(self) -> aiohttp.ClientSession:
        connector = None
        if self.settings.proxy_url:
            connector = ProxyConnector.from_url(self.settings.proxy_url, rdns=True)
        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.settings.timeout),
        )

    async def fetch_text(self, url: URL, headers: Mapping[str, str]) -> str:
        if self._session is None or self._session.closed:
            self._session = self._create_session()

        async with self._session.get(
            url,
            headers=dict(headers),
            allow_redirects=True,
        ) as response:
            logger.debug(
                "Fetched dynamic access key",
                host=url.host,
                status=response.status,
                redirected=bool(response.history),
            )
            return await response.text(errors="replace")

    async def close(self) -> None:
        """Close the underlying client session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AiohttpFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def fetch_session_config(
    location: Union[str, URL],
    *,
    fetcher: Fetcher,
    platform: Optional[PlatformInfo] = None,
    environment: Optional[EnvironmentProvider] = None,
    user_agent_product: Optional[str] = None,
) -> Union[ShadowsocksSessionConfig, XraySessionConfig]:
    """
    Fetch a dynamic access key and translate the response.

    Args:
        location: Dynamic access key URL
        fetcher: Transport used for the single request
        platform: Platform identity (detected if not provided)
        environment: Environment provider (process-wide one if not provided)
        user_agent_product: Product token for platform User-Agent headers

    Returns:
        The resolved session config

    Raises:
        SessionConfigFetchFailed: If the request could not be completed
        SessionConfigError: If the server declared an error
        AccessKeyInvalid: If the URL or the response could not be understood
    """
    try:
        url = normalize_config_location(location)
    except ValueError as e:
        raise AccessKeyInvalid("Invalid dynamic access key.") from e

    platform = platform or detect_platform()
    environment = environment or default_environment()
    product = user_agent_product or get_settings().fetch.user_agent_product

    env = await environment.get()
    headers = platform.request_headers(env, product)

    logger.info("Fetching dynamic access key", host=url.host, platform=platform.name)
    try:
        body = await fetcher.fetch_text(url, headers)
    except FETCH_ERRORS as e:
        logger.warning("Dynamic access key fetch failed", host=url.host, error=str(e))
        raise SessionConfigFetchFailed(
            "Failed to fetch VPN information from dynamic access key."
        ) from e

    return session_config_from_response(body.strip())
