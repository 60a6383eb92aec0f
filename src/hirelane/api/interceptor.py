from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from starlette.routing import BaseRoute, Match
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class InterceptingTransport(httpx.AsyncBaseTransport):
    """Answers declared routes in-process and passes everything else through.

    A request is intercepted when its method and path fully match one of
    ``routes``; it is then handed to ``app`` over ASGI without touching the
    network. Any other request goes to ``passthrough`` unmodified.
    """

    def __init__(
        self,
        app: ASGIApp,
        routes: Sequence[BaseRoute],
        *,
        passthrough: httpx.AsyncBaseTransport | None = None,
    ):
        self.routes = list(routes)
        self._app_transport = httpx.ASGITransport(app=app)
        self._passthrough = passthrough or httpx.AsyncHTTPTransport()

    def matches(self, request: httpx.Request) -> bool:
        scope = {
            "type": "http",
            "method": request.method,
            "path": request.url.path,
            "root_path": "",
        }
        for route in self.routes:
            match, _ = route.matches(scope)
            if match == Match.FULL:
                return True
        return False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.matches(request):
            logger.debug("Intercepted %s %s", request.method, request.url.path)
            return await self._app_transport.handle_async_request(request)
        logger.debug("Passing through %s %s", request.method, request.url)
        return await self._passthrough.handle_async_request(request)

    async def aclose(self) -> None:
        await self._app_transport.aclose()
        await self._passthrough.aclose()
