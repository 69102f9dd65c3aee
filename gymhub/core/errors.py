"""Error taxonomy and FastAPI handlers."""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from gymhub.core.logging import LOGGER_NAME, get_request_id

_logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    """Base for errors that map onto an HTTP status and a stable error code."""

    code = "app_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        request_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or type(self).code
        self.status_code = status_code or type(self).status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class EmptyCartError(ValidationError):
    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty", **kwargs):
        super().__init__(message, **kwargs)


class InsufficientStockError(ConflictError):
    """Raised when a cart line asks for more units than a product has in stock."""
    code = "insufficient_stock"

    def __init__(self, product_id: str, product_name: str, **kwargs):
        super().__init__(f"Insufficient stock for {product_name}", **kwargs)
        self.product_id = product_id
        self.product_name = product_name


class InternalError(AppError):
    code = "internal_error"
    status_code = 500


def _request_id_for(request: Request, exc: Optional[AppError] = None) -> str:
    if exc is not None and exc.request_id:
        return exc.request_id
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def _error_response(status: int, code: str, message: str, rid: str, **extra) -> JSONResponse:
    """Every error body carries the same envelope plus a top-level ``detail``."""
    body = {"error": {"code": code, "message": message, "request_id": rid}, "detail": message}
    body.update(extra)
    return JSONResponse(status_code=status, content=body, headers={"x-request-id": rid})


async def app_error_handler(request: Request, exc: AppError):
    rid = _request_id_for(request, exc)
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    _logger.log(
        level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    # Internal errors never leak their message to the caller
    message = "Internal server error" if exc.status_code >= 500 else exc.message
    return _error_response(exc.status_code, exc.code, message, rid)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    rid = _request_id_for(request)
    problems = exc.errors()
    first = problems[0] if problems else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Validation failed")
    if field:
        message = f"{field}: {message}"
    _logger.warning("request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 400})
    details = [{"loc": list(p.get("loc", ())), "msg": p.get("msg"), "type": p.get("type")} for p in problems]
    return _error_response(400, "validation_error", message, rid, errors=details)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _request_id_for(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    _logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _error_response(exc.status_code, code, exc.detail or "HTTP error", rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _request_id_for(request)
    _logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    return _error_response(500, "internal_error", "Internal server error", rid)
