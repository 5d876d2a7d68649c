"""CORS middleware that leaves the public lead endpoints alone.

The lead and contact endpoints are called from static pages on any origin
and answer their own preflights with ``Access-Control-Allow-Origin: *``.
Everything else, including the cookie-based wizard API, is restricted to the
configured origins.
"""

from starlette.middleware.cors import CORSMiddleware
from starlette.types import Receive, Scope, Send

PUBLIC_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}


class ScopedCORSMiddleware(CORSMiddleware):
    """``CORSMiddleware`` that skips a fixed set of open paths."""

    def __init__(self, app, open_paths: frozenset[str] = frozenset(), **kwargs) -> None:
        super().__init__(app, **kwargs)
        self.open_paths = open_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"] in self.open_paths:
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


def public_cors_headers(methods: str) -> dict[str, str]:
    """Headers for an endpoint open to every origin."""
    return {**PUBLIC_CORS_HEADERS, "Access-Control-Allow-Methods": methods}
