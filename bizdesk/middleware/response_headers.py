"""
middleware/response_headers.py
------------------------------
Response headers on /api: no caching, and the body size when it is known.
"""

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class ResponseHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
            response.headers["Pragma"] = "no-cache"
            response.headers["Expires"] = "0"

        length = response.headers.get("content-length")
        if length and length.isdigit():
            response.headers["X-Original-Size"] = length
            response.headers["X-Original-Size-KB"] = f"{int(length) / 1024:.2f}"
        return response
