from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from adminstore.core.errors import (
    ALREADY_EXISTS,
    BATCH_TOO_LARGE,
    CONTRACT_PAUSED,
    INVALID_INPUT,
    INVALID_PERMISSION,
    INVALID_VALUE,
    MAX_ADMINS_REACHED,
    NOT_ADMIN,
    NOT_FOUND,
    OWNER_ONLY,
    RATE_LIMITED,
    RECORD_LOCKED,
    StoreError,
)

log = logging.getLogger("adminstore.http")


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def unauthorized(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(401, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


_STATUS_BY_CODE: Dict[str, int] = {
    OWNER_ONLY: 403,
    NOT_ADMIN: 403,
    ALREADY_EXISTS: 409,
    MAX_ADMINS_REACHED: 409,
    NOT_FOUND: 404,
    INVALID_VALUE: 400,
    INVALID_PERMISSION: 400,
    BATCH_TOO_LARGE: 400,
    INVALID_INPUT: 400,
    CONTRACT_PAUSED: 423,
    RECORD_LOCKED: 423,
    RATE_LIMITED: 429,
}


def status_for(code: str) -> int:
    return _STATUS_BY_CODE.get(code, 400)


def _envelope(code: str, message: str, details: Any) -> Dict[str, Any]:
    return {"ok": False, "error": {"code": code, "message": message, "details": details or {}}}


def register_error_handlers(app: FastAPI) -> None:
    """Map ApiError, StoreError and request validation failures to the JSON error envelope."""

    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=_envelope(exc.code, exc.message, exc.details))

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
        return JSONResponse(status_code=status_for(exc.code), content=_envelope(exc.code, exc.reason, exc.details))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg", ""), "type": e.get("type", "")}
            for e in exc.errors()
        ]
        log.warning("validation error on %s %s: %d issue(s)", request.method, request.url.path, len(errors))
        return JSONResponse(
            status_code=400,
            content=_envelope(INVALID_INPUT, "request validation failed", {"errors": errors}),
        )
