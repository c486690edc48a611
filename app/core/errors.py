from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.exceptions.app_store import AppStoreClientNotInitializedException
from app.core.exceptions.base import AppException
from app.core.exceptions.domain import PersistenceError, UpstreamError, ValidationError
from app.core.exceptions.google_play import GooglePlayNotConfiguredException

# Checked in order, the first matching class wins
STATUS_CODES: tuple[tuple[type[AppException], int], ...] = (
    (AppStoreClientNotInitializedException, status.HTTP_503_SERVICE_UNAVAILABLE),
    (GooglePlayNotConfiguredException, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (PersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_code_for(exc: AppException) -> int:
    for exception_class, status_code in STATUS_CODES:
        if isinstance(exc, exception_class):
            return status_code

    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Render a domain exception as {"success": false, "error": ...}"""
    status_code = status_code_for(exc)

    logger.warning(
        f"{request.method} {request.url.path} failed with {status_code}: "
        f"{type(exc).__name__}: {exc.message}"
    )

    return error_response(status_code, exc.message)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request bodies that fail validation are a 400, like any other invalid input"""
    errors = exc.errors()

    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []) if loc != "body")
        message = first_error.get("msg", "Invalid value")

        if field:
            message = f"{field}: {message}"
    else:
        message = "Invalid request"

    logger.warning(f"{request.method} {request.url.path} rejected: {message}")

    return error_response(status.HTTP_400_BAD_REQUEST, message)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
