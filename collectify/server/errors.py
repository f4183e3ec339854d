"""JSON error responses shared by the API routers."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .auth import AuthenticationError

logger = logging.getLogger("uvicorn.error")

UNAUTHORIZED_MESSAGE = "Unauthorized - please authenticate"


class ApiError(Exception):
    """A non-2xx JSON response raised from inside a route.

    Raising (rather than returning) lets the usage gate see the failure and
    refund its reservation.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        *,
        details: Any = None,
        payload: dict[str, Any] | None = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.payload = payload

    def to_dict(self) -> dict[str, Any]:
        if self.payload is not None:
            return self.payload
        body: dict[str, Any] = {"success": False, "error": self.error, "message": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class UsageLimitExceeded(Exception):
    def __init__(self, body: dict[str, Any]):
        super().__init__(body.get("error", "Usage limit exceeded"))
        self.body = body


def internal_error(exc: Exception) -> ApiError:
    return ApiError(500, "Internal server error", details=str(exc))


async def _api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _usage_limit_handler(_: Request, exc: UsageLimitExceeded) -> JSONResponse:
    return JSONResponse(status_code=429, content=exc.body)


async def _authentication_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.warning("Authentication failed for %s: %s", request.url.path, exc.reason)
    return JSONResponse(status_code=401, content={"success": False, "error": UNAUTHORIZED_MESSAGE})


async def _request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        f"{'.'.join(str(part) for part in error.get('loc', ()) if part != 'body')}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "details": details},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(UsageLimitExceeded, _usage_limit_handler)
    app.add_exception_handler(AuthenticationError, _authentication_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)


__all__ = [
    "ApiError",
    "UNAUTHORIZED_MESSAGE",
    "UsageLimitExceeded",
    "internal_error",
    "register_error_handlers",
]
