from typing import Any, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class ProxyError(Exception):
    """Terminal proxy failure rendered as {"ok": false, "error": ..., "details": ...}."""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


def error_envelope(message: str, details: Optional[Any] = None) -> dict:
    body = {"ok": False, "error": message}
    if details is not None:
        body["details"] = details
    return body


async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.message, exc.details),
    )
