import logging
import os
import secrets
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("travelflow")

CTK_COOKIE_NAME = "ctk"
CTK_MAX_AGE = 315360000  # 10 years
COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
REQUEST_ID_HEADER = "X-Request-ID"

QUIET_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}


class CTKMiddleware(BaseHTTPMiddleware):
    """Gives every browser a cookie tracking key (ctk), used as its trip owner id.

    Only ``/api`` requests get one; preflights and docs are left alone.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS" or not request.url.path.startswith("/api"):
            request.state.ctk = None
            return await call_next(request)

        ctk = request.cookies.get(CTK_COOKIE_NAME)
        issued = not ctk
        if issued:
            ctk = secrets.token_urlsafe(24)
        request.state.ctk = ctk

        response = await call_next(request)
        if issued:
            response.set_cookie(
                CTK_COOKIE_NAME,
                ctk,
                max_age=CTK_MAX_AGE,
                path="/api",
                domain=COOKIE_DOMAIN,
                secure=request.url.scheme == "https",
                httponly=True,
                samesite="lax",
            )
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs one line when it finishes."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or secrets.token_hex(6)
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        path = request.url.path
        if path in QUIET_PATHS:
            return response

        logger.log(
            logging.WARNING if response.status_code >= 500 else logging.INFO,
            f"{request.method} {path} {response.status_code}",
            extra={"extra_data": {
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000),
                "ctk": getattr(request.state, "ctk", None),
            }},
        )
        return response
