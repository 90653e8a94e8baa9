"""
Access key resolver.

Classifies an access key by literal prefix and resolves it either locally
(static keys) or by fetching it from a key server (dynamic keys).
"""

from typing import Optional, Union

from .core.config import FetchSettings, get_settings
from .core.logging import get_logger
from .environment import EnvironmentProvider, default_environment
from .fetcher import AiohttpFetcher, Fetcher, fetch_session_config
from .models import ShadowsocksSessionConfig, XraySessionConfig
from .platform_info import PlatformInfo, detect_platform
from .static import static_key_to_session_config

logger = get_logger(__name__)

# Prefixes marking a key as a URL to fetch, checked in order
DYNAMIC_KEY_PREFIXES = ("ssconf://", "xray://", "https://")


def is_dynamic_access_key(access_key: str) -> bool:
    """Check whether an access key must be fetched before use."""
    return access_key.startswith(DYNAMIC_KEY_PREFIXES)


class AccessKeyResolver:
    """
    Resolves access keys into session configs.

    Resolutions are independent of each other; the only state kept between
    calls is the fetch transport and the cached environment info.
    """

    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        platform: Optional[PlatformInfo] = None,
        environment: Optional[EnvironmentProvider] = None,
        settings: Optional[FetchSettings] = None,
    ):
        """
        Initialize the resolver.

        Args:
            fetcher: Transport for dynamic keys (an AiohttpFetcher is created if not provided)
            platform: Platform identity (detected if not provided)
            environment: Environment provider (process-wide one if not provided)
            settings: Fetch settings (uses application settings if not provided)
        """
        self.settings = settings or get_settings().fetch
        self._owns_fetcher = fetcher is None
        self.fetcher: Fetcher = fetcher or AiohttpFetcher(self.settings)
        self.platform = platform or detect_platform()
        self.environment = environment or default_environment()

    def resolve_static(
        self, access_key: str
    ) -> Union[ShadowsocksSessionConfig, XraySessionConfig]:
        """Resolve a static access key without any I/O."""
        return static_key_to_session_config(access_key.strip())

    async def resolve(
        self, access_key: str
    ) -> Union[ShadowsocksSessionConfig, XraySessionConfig]:
        """
        Resolve any supported access key.

        Args:
            access_key: Static key or dynamic key URL

        Returns:
            The resolved session config

        Raises:
            AccessKeyInvalid: If the key or fetched content is malformed
            SessionConfigFetchFailed: If a dynamic key could not be fetched
            SessionConfigError: If the key server declared an error
        """
        access_key = access_key.strip()

        if is_dynamic_access_key(access_key):
            logger.debug("Resolving dynamic access key")
            return await fetch_session_config(
                access_key,
                fetcher=self.fetcher,
                platform=self.platform,
                environment=self.environment,
                user_agent_product=self.settings.user_agent_product,
            )

        logger.debug("Resolving static access key")
        return static_key_to_session_config(access_key)

    async def close(self) -> None:
        """Release the fetch transport if the resolver created it."""
        if self._owns_fetcher and isinstance(self.fetcher, AiohttpFetcher):
            await self.fetcher.close()

    async def __aenter__(self) -> "AccessKeyResolver":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def resolve_access_key(
    access_key: str,
    settings: Optional[FetchSettings] = None,
) -> Union[ShadowsocksSessionConfig, XraySessionConfig]:
    """
    Convenience function to resolve a single access key.

    Args:
        access_key: Static key or dynamic key URL
        settings: Fetch settings (uses application settings if not provided)

    Returns:
        The resolved session config
    """
    async with AccessKeyResolver(settings=settings) as resolver:
        return await resolver.resolve(access_key)
