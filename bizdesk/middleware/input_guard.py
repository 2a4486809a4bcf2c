"""
middleware/input_guard.py
-------------------------
Request hygiene for /api, applied before routing:

  1. Repeated query parameters collapse to their last value, except the
     whitelisted list-style parameters.
  2. Outside the CRUD resource paths, raw bodies and query strings are
     checked for SQL-injection, script-injection and path-traversal
     patterns; a match is answered with 403 and logged.
  3. Query values, top-level string fields of JSON bodies and the fields
     of urlencoded form bodies are trimmed and HTML-escaped. Password
     fields are left untouched. Multipart uploads pass through as sent.

Written as a plain ASGI middleware because it rewrites the request body.
"""

import html
import json
import re
from typing import Any, List, Tuple
from urllib.parse import parse_qsl, unquote_plus, urlencode

from fastapi import status
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from bizdesk.core.logging import get_logger

logger = get_logger(__name__)

MULTI_VALUE_PARAMS = frozenset({"page", "limit", "sort", "status", "search"})
UNESCAPED_FIELDS = frozenset({"password", "currentPassword", "newPassword", "adminPassword"})

CRUD_PREFIXES = (
    "/api/company/settings",
    "/api/users/",
    "/api/products",
    "/api/customers",
    "/api/sales",
    "/api/invoices",
    "/api/expenses",
    "/api/returns",
    "/api/reports",
    "/api/backup",
    "/api/notifications",
)

SUSPICIOUS_PATTERNS = (
    re.compile(r"\$where", re.IGNORECASE),
    re.compile(r"union\s+select|drop\s+table|drop\s+database", re.IGNORECASE),
    re.compile(r"<script[^>]*>|javascript:.*alert|onerror\s*=", re.IGNORECASE),
    re.compile(r"(\.\./){3,}"),
)

SUSPICIOUS_MESSAGE = "Suspicious activity detected. This incident has been logged."


def collapse_repeated_params(pairs: List[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Keep the last value of each non-whitelisted key, in first-seen order."""
    last = {key: value for key, value in pairs if key not in MULTI_VALUE_PARAMS}
    seen = set()
    collapsed = []
    for key, value in pairs:
        if key in MULTI_VALUE_PARAMS:
            collapsed.append((key, value))
        elif key not in seen:
            seen.add(key)
            collapsed.append((key, last[key]))
    return collapsed


def clean(value: str) -> str:
    return html.escape(value.strip(), quote=True)


def sanitize_payload(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return payload
    return {
        key: clean(value) if isinstance(value, str) and key not in UNESCAPED_FIELDS else value
        for key, value in payload.items()
    }


def is_suspicious(text: str) -> bool:
    return any(pattern.search(text) for pattern in SUSPICIOUS_PATTERNS)


JSON = b"application/json"
FORM = b"application/x-www-form-urlencoded"


def _media_type(scope: Scope) -> bytes:
    for name, value in scope.get("headers", []):
        if name == b"content-type":
            return value.split(b";")[0].strip().lower()
    return b""


def sanitize_form(body: bytes) -> bytes:
    pairs = parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True)
    return urlencode(
        [(key, value if key in UNESCAPED_FIELDS else clean(value)) for key, value in pairs]
    ).encode("utf-8")


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def _replay(body: bytes, receive: Receive) -> Receive:
    sent = False

    async def replay() -> Message:
        nonlocal sent
        if sent:
            # Later calls wait for the disconnect, as the server's receive would
            return await receive()
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return replay


class InputGuardMiddleware:

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not scope["path"].startswith("/api"):
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        pairs = collapse_repeated_params(
            parse_qsl(scope.get("query_string", b"").decode("latin-1"), keep_blank_values=True)
        )
        media_type = _media_type(scope)
        body = await _read_body(receive) if media_type in (JSON, FORM) else None

        if not path.startswith(CRUD_PREFIXES):
            raw_query = unquote_plus(scope.get("query_string", b"").decode("latin-1"))
            raw_body = body.decode("utf-8", errors="replace") if body else ""
            if media_type == FORM:
                raw_body = unquote_plus(raw_body)
            if is_suspicious(raw_query) or is_suspicious(raw_body):
                logger.error(
                    "Suspicious request blocked",
                    path=path,
                    method=scope.get("method"),
                    client=(scope.get("client") or ("unknown",))[0],
                )
                response = JSONResponse(
                    status_code=status.HTTP_403_FORBIDDEN,
                    content={"detail": SUSPICIOUS_MESSAGE},
                )
                await response(scope, receive, send)
                return

        scope = dict(scope)
        scope["query_string"] = urlencode([(k, clean(v)) for k, v in pairs]).encode("latin-1")

        if body is not None and media_type == FORM:
            body = sanitize_form(body)
        elif body is not None:
            try:
                payload = json.loads(body)
            except ValueError:
                # Malformed JSON goes through as sent; request validation reports it
                payload = None
            if isinstance(payload, dict):
                body = json.dumps(sanitize_payload(payload)).encode("utf-8")
        if body is not None:
            scope["headers"] = [
                (name, value) for name, value in scope["headers"] if name != b"content-length"
            ] + [(b"content-length", str(len(body)).encode("latin-1"))]
            receive = _replay(body, receive)

        await self.app(scope, receive, send)
