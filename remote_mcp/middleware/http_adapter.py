"""Starlette adapter running MCPMiddleware on HTTP requests."""

import math
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from remote_mcp.middleware.base import MCPMiddleware
from remote_mcp.middleware.ratelimit import RateLimitError

# Paths served without authentication or rate limiting
UNGUARDED_PATHS = frozenset({"/health"})


def client_ip(request: Request) -> str:
    """Client address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


class HTTPMiddlewareAdapter(BaseHTTPMiddleware):
    """Translate an HTTP request into MCPMiddleware context.

    Rejections become 401 responses, rate limit hits 429 with Retry-After.
    """

    def __init__(self, app: Any, mcp_middleware: MCPMiddleware):
        super().__init__(app)
        self.mcp_middleware = mcp_middleware

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        if request.url.path in UNGUARDED_PATHS:
            return await call_next(request)

        context = {
            "client_ip": client_ip(request),
            "api_key": request.headers.get("X-API-Key"),
            "method": request.method,
            "path": request.url.path,
        }

        try:
            await self.mcp_middleware.process_request(
                method=request.method, params={}, context=context
            )
        except RateLimitError as e:
            return JSONResponse(
                status_code=429,
                content={"error": str(e)},
                headers={"Retry-After": str(max(1, math.ceil(e.retry_after)))},
            )
        except PermissionError as e:
            return JSONResponse(status_code=401, content={"error": str(e)})

        return await call_next(request)
