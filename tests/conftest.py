"""
Shared fixtures for TunnelKey tests.
"""

import pytest
import pytest_asyncio
from aiohttp import web

from tunnelkey.environment import EnvironmentInfo, EnvironmentProvider


class KeyServer:
    """In-process key server recording every request it receives."""

    def __init__(self):
        self.responses: dict[str, tuple[int, str]] = {}
        self.requests: list[web.Request] = []
        self.port: int = 0

    def url(self, path: str) -> str:
        return f"http://127.0.0.1:{self.port}{path}"

    async def handle_key(self, request: web.Request) -> web.Response:
        self.requests.append(request)
        status, body = self.responses.get(request.match_info["name"], (404, "not found"))
        return web.Response(status=status, text=body)

    async def handle_redirect(self, request: web.Request) -> web.Response:
        self.requests.append(request)
        raise web.HTTPFound(f"/keys/{request.match_info['name']}")


@pytest_asyncio.fixture
async def key_server():
    """Start a key server on a free local port."""
    server = KeyServer()
    app = web.Application()
    app.router.add_get("/keys/{name}", server.handle_key)
    app.router.add_get("/redirect/{name}", server.handle_redirect)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    server.port = runner.addresses[0][1]

    yield server

    await runner.cleanup()


@pytest.fixture
def environment():
    """Environment provider with a fixed app version."""
    async def loader():
        return EnvironmentInfo(app_version="9.9.9")

    return EnvironmentProvider(loader)
