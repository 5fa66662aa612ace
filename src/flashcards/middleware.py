from __future__ import annotations

import asyncio
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from structlog import contextvars as structlog_contextvars

from .logging import logger
from .metrics import UNMATCHED_ROUTE, registry, route_key


_MAX_ERROR_MESSAGE = 200

Handler = Callable[[Request], Awaitable[Response]]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an ID.

    - Reuses an incoming `X-Request-ID`, otherwise generates one
    - Binds it into structlog contextvars so `card_reviewed` etc. carry it
    - Echoes it back in the `X-Request-ID` response header
    """

    async def dispatch(self, request: Request, call_next: Handler) -> Response:  # type: ignore[override]
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        structlog_contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog_contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


def _truncate(message: str) -> str:
    if len(message) <= _MAX_ERROR_MESSAGE:
        return message
    return f"{message[:_MAX_ERROR_MESSAGE - 3]}..."


class AccessLogAndMetricsMiddleware(BaseHTTPMiddleware):
    """Emit one `request_complete` event per request and feed the metrics registry.

    ルートテンプレート単位で遅延・エラーを集計し、カード/デッキ ID は
    path_params としてログにだけ残す。
    """

    async def dispatch(self, request: Request, call_next: Handler) -> Response:  # type: ignore[override]
        # ルーティングで scope が書き換わる前の完全なパスを保持する
        full_path = request.url.path
        started = time.perf_counter()
        status_code = 500
        error: Exception | None = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        except Exception as exc:
            error = exc
            raise
        finally:
            latency_ms = (time.perf_counter() - started) * 1000
            path_params = dict(request.scope.get("path_params") or {})
            if request.scope.get("route") is None:
                path = UNMATCHED_ROUTE
            else:
                path = route_key(full_path, path_params)
            is_error = error is not None or status_code >= 500
            is_timeout = isinstance(error, asyncio.TimeoutError)
            registry.record_request(path, latency_ms, status_code=status_code, is_timeout=is_timeout)
            log = logger.error if is_error else logger.info
            log(
                "request_complete",
                path=path,
                path_params=path_params,
                method=request.method,
                latency_ms=round(latency_ms, 2),
                is_error=is_error,
                is_timeout=is_timeout,
                status_code=status_code,
                error_type=type(error).__name__ if error is not None else None,
                error_message=_truncate(str(error)) if error is not None else None,
                request_id=getattr(request.state, "request_id", None),
            )
