"""
Platform identity used when fetching dynamic access keys.

Only macOS clients identify themselves to the key server with a custom
User-Agent header; every other platform sends no extra headers.
"""

import platform
from abc import ABC, abstractmethod

from .environment import EnvironmentInfo


class PlatformInfo(ABC):
    """Describes the running platform and the request headers it needs."""

    def __init__(self, version: str = ""):
        self.version = version

    @property
    @abstractmethod
    def name(self) -> str:
        """Platform name as reported to key servers."""

    @abstractmethod
    def request_headers(self, env: EnvironmentInfo, product: str) -> dict[str, str]:
        """
        Extra HTTP headers for a dynamic key request.

        Args:
            env: Resolved environment info
            product: Product token for the User-Agent

        Returns:
            Mapping of header names to values (may be empty)
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, version={self.version!r})"


class MacOSPlatformInfo(PlatformInfo):
    """macOS: requests carry a product User-Agent."""

    @property
    def name(self) -> str:
        return "macOS"

    def request_headers(self, env: EnvironmentInfo, product: str) -> dict[str, str]:
        return {
            "User-Agent": f"{product}/{env.app_version} ({self.name}/{self.version})"
        }


class GenericPlatformInfo(PlatformInfo):
    """Any other platform: no extra headers."""

    def __init__(self, name: str = "", version: str = ""):
        super().__init__(version)
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def request_headers(self, env: EnvironmentInfo, product: str) -> dict[str, str]:
        return {}


def detect_platform() -> PlatformInfo:
    """Return the PlatformInfo implementation for the running system."""
    system = platform.system()
    if system == "Darwin":
        return MacOSPlatformInfo(platform.mac_ver()[0])
    return GenericPlatformInfo(system, platform.release())
