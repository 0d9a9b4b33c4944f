"""CORS handling driven by the configured origin allow-list.

Allowed origins are reflected back (credentials are allowed, so ``*`` can't
be sent). Disallowed origins get no CORS headers and the browser blocks the
response; the request itself is still served.
"""

from __future__ import annotations

import logging

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from imgate.cors import OriginMatcher

logger = logging.getLogger(__name__)

ALLOW_METHODS = "GET,HEAD,PUT,PATCH,POST,DELETE,OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, X-Requested-With"


def _cors_headers(origin: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Vary": "Origin",
    }


class OriginCORSMiddleware:
    """Pure ASGI middleware applying the origin allow-list."""

    def __init__(self, app: ASGIApp, matcher: OriginMatcher) -> None:
        self.app = app
        self.matcher = matcher

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        origin = headers.get("origin")
        allowed = self.matcher.is_allowed(origin)

        if scope["method"] == "OPTIONS" and "access-control-request-method" in headers:
            if not allowed:
                logger.info("CORS preflight rejected for origin %s", origin)
            cors = _cors_headers(origin) if allowed and origin else {}
            response = Response(status_code=204, headers=cors)
            await response(scope, receive, send)
            return

        if not origin or not allowed:
            await self.app(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for name, value in _cors_headers(origin).items():
                    if name == "Vary":
                        response_headers.add_vary_header("Origin")
                    else:
                        response_headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_cors)
