from __future__ import annotations

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

DEFAULT_CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, PUT, DELETE",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Requested-With",
    "Access-Control-Max-Age": "86400",  # 24 hours
}


class PermissiveCORSMiddleware(BaseHTTPMiddleware):
    """Attach allow-all CORS headers to every response.

    Unlike Starlette's CORSMiddleware this does not depend on an Origin header
    being present: any OPTIONS request is answered with an empty 200, and every
    other response (errors included) gets the same headers.
    """

    def __init__(self, app, headers: dict[str, str] | None = None):
        super().__init__(app)
        self.cors_headers = dict(headers or DEFAULT_CORS_HEADERS)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=self.cors_headers)

        logger.debug("Relay request", extra={"method": request.method, "path": request.url.path})
        response = await call_next(request)
        for name, value in self.cors_headers.items():
            response.headers[name] = value
        return response
