"""
Application environment info.

The environment is looked up once per provider and then reused; the
process-wide provider returned by ``default_environment`` therefore loads
it once for the lifetime of the process.
"""

from functools import lru_cache
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from .core.logging import get_logger

logger = get_logger(__name__)


class EnvironmentInfo(BaseModel):
    """Application identity reported to key servers."""

    model_config = ConfigDict(frozen=True)

    app_name: str = Field(default="tunnelkey", description="Application name")
    app_version: str = Field(..., min_length=1, description="Application version")


async def load_environment() -> EnvironmentInfo:
    """Build EnvironmentInfo from settings, falling back to the package version."""
    from . import __version__
    from .core.config import get_settings

    settings = get_settings()
    return EnvironmentInfo(app_version=settings.app_version or __version__)


class EnvironmentProvider:
    """Loads EnvironmentInfo lazily and caches the result."""

    def __init__(self, loader: Optional[Callable[[], Awaitable[EnvironmentInfo]]] = None):
        self._loader = loader or load_environment
        self._info: Optional[EnvironmentInfo] = None

    async def get(self) -> EnvironmentInfo:
        if self._info is None:
            self._info = await self._loader()
            logger.debug("Loaded environment info", app_version=self._info.app_version)
        return self._info


@lru_cache()
def default_environment() -> EnvironmentProvider:
    """Get the process-wide environment provider."""
    return EnvironmentProvider()
