from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong on the server"


class AppError(Exception):
    """An expected, user-facing failure with an HTTP status."""

    status_code = 500
    is_operational = True

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errors: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors or {}

    @property
    def status(self) -> str:
        return "fail" if str(self.status_code).startswith("4") else "error"


class ValidationFailed(AppError):
    status_code = 400

    def __init__(self, errors: dict[str, str], message: str = "Validation failed") -> None:
        super().__init__(message, errors=errors)


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "No submission found with that ID") -> None:
        super().__init__(message)


class ConstraintError(AppError):
    status_code = 400

    def __init__(self, message: str = "Duplicate field value entered.") -> None:
        super().__init__(message)


def _dev_payload(exc: BaseException, status_code: int, message: str) -> dict[str, Any]:
    errors = exc.errors if isinstance(exc, AppError) else {}
    status = exc.status if isinstance(exc, AppError) else "error"
    return {
        "success": False,
        "status": status,
        "message": message,
        "errors": errors,
        "stack": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
    }


def wants_html(request: Request) -> bool:
    """Pages outside the REST prefix get their errors as an HTML page."""
    return not request.url.path.startswith("/api")


def _error_payload(request: Request, exc: BaseException) -> tuple[int, dict[str, Any]]:
    settings = request.app.state.settings
    if isinstance(exc, IntegrityError):
        exc = ConstraintError()

    if isinstance(exc, AppError):
        status_code = exc.status_code
        message = exc.message
    else:
        logger.error(
            "Unhandled error on %s %s",
            request.method,
            request.url.path,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        status_code = 500
        message = str(exc) or "Internal Server Error"

    if settings.is_development:
        return status_code, _dev_payload(exc, status_code, message)

    if isinstance(exc, AppError) and exc.is_operational:
        payload: dict[str, Any] = {"success": False, "message": message}
        if exc.errors:
            payload["errors"] = exc.errors
        return status_code, payload

    return 500, {"success": False, "message": GENERIC_ERROR_MESSAGE}


def error_response(request: Request, exc: BaseException) -> Response:
    status_code, payload = _error_payload(request, exc)
    if wants_html(request):
        return request.app.state.templates.TemplateResponse(
            request,
            "error.html",
            {
                "form": request.app.state.form_schema,
                "status_code": status_code,
                "error": payload,
            },
            status_code=status_code,
        )
    return JSONResponse(payload, status_code=status_code)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> Response:
        return error_response(request, exc)

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError) -> Response:
        return error_response(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Can't find {request.url.path} on this server!"
        else:
            message = str(exc.detail)
        error = AppError(message, status_code=exc.status_code)
        response = error_response(request, error)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> Response:
        return error_response(request, exc)
