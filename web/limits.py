"""Request body size limits enforced while the body is being received.

Oversized bodies are cut off as soon as the limit is crossed instead of
being buffered in full and rejected afterwards.
"""

from __future__ import annotations

import logging

from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from imgate.errors import PayloadTooLargeError

logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers on top of the file bytes.
MULTIPART_OVERHEAD = 1024 * 1024


class BodySizeLimitMiddleware:
    """Pure ASGI middleware rejecting request bodies above a per-path limit."""

    def __init__(self, app: ASGIApp, limits: dict[str, int], default_limit: int) -> None:
        self.app = app
        self.limits = limits
        self.default_limit = default_limit

    def _limit_for(self, path: str) -> int:
        return self.limits.get(path, self.default_limit)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self._limit_for(scope["path"])
        message = f"Request body too large. Max {limit // (1024 * 1024)} MB."

        content_length = Headers(scope=scope).get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > limit:
            logger.warning("Rejected %s %s: content-length %s > %d", scope["method"], scope["path"], content_length, limit)
            response = JSONResponse({"error": message}, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            msg = await receive()
            if msg["type"] == "http.request":
                received += len(msg.get("body", b""))
                if received > limit:
                    logger.warning("Rejected %s %s: body exceeded %d bytes", scope["method"], scope["path"], limit)
                    raise PayloadTooLargeError(message)
            return msg

        await self.app(scope, limited_receive, send)
