from fastapi import Request
from fastapi.responses import JSONResponse


class APIError(Exception):
    """Error rendered as an ``{"error": ..., "details": ...}`` body."""

    def __init__(self, status_code: int, error: str, details: str | None = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    body = {"error": exc.error}
    if exc.details is not None:
        body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)
