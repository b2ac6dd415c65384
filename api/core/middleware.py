"""Pure ASGI middleware for the JSON API.

Both middlewares only touch the ``http.response.start`` message, so they work
with streaming and plain responses alike and skip lifespan/websocket scopes.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import bind_contextvars, clear_contextvars

REQUEST_ID_HEADER = b"x-request-id"

# The API never serves HTML, so it may forbid every content source
API_SECURITY_HEADERS: tuple[tuple[bytes, bytes], ...] = (
    (b"content-security-policy", b"default-src 'none'; frame-ancestors 'none'"),
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"DENY"),
    (b"referrer-policy", b"no-referrer"),
    (b"strict-transport-security", b"max-age=31536000; includeSubDomains"),
)


def _appending_headers(send: Send, extra: Sequence[tuple[bytes, bytes]]) -> Send:
    async def wrapped(message: Message) -> None:
        if message["type"] == "http.response.start":
            message["headers"] = [*message.get("headers", []), *extra]
        await send(message)

    return wrapped


class SecurityHeadersMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            send = _appending_headers(send, API_SECURITY_HEADERS)
        await self.app(scope, receive, send)


class RequestContextMiddleware:
    """Binds request id, method and path into structlog contextvars.

    Every log line emitted while handling the request carries them. An
    incoming ``X-Request-Id`` is reused, otherwise one is generated; either
    way it is echoed on the response.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        incoming = dict(scope.get("headers", [])).get(REQUEST_ID_HEADER, b"")
        request_id = incoming.decode("latin-1") or uuid.uuid4().hex

        clear_contextvars()
        bind_contextvars(
            request_id=request_id,
            method=scope.get("method"),
            path=scope.get("path"),
        )
        send = _appending_headers(
            send, [(REQUEST_ID_HEADER, request_id.encode("latin-1"))]
        )
        try:
            await self.app(scope, receive, send)
        finally:
            clear_contextvars()
