"""
Preflight handling for the relay routes.

Browsers send ``OPTIONS`` with ``Origin`` and ``Access-Control-Request-Method``
before every cross-origin POST. Starlette's CORSMiddleware answers those with
``200 OK`` and a body; the relay answers every OPTIONS on its routes, bare or
not, with an empty 204 instead. Added after CORSMiddleware so it runs first.
"""

from __future__ import annotations

from typing import Iterable

from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Max-Age": "86400",
}


class PreflightMiddleware:
    def __init__(self, app: ASGIApp, paths: Iterable[str]):
        self.app = app
        self.paths = frozenset(paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if (
            scope["type"] == "http"
            and scope["method"] == "OPTIONS"
            and scope["path"] in self.paths
        ):
            response = Response(status_code=204, headers=PREFLIGHT_HEADERS)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)
