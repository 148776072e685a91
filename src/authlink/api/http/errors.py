"""Translation of application errors into HTTP responses."""

from fastapi import Request, status
from loguru import logger
from starlette.responses import JSONResponse

from src.authlink.core.errors import (
    ECONFLICT,
    EINTERNAL,
    EINVALID,
    ENOTFOUND,
    ENOTIMPLEMENTED,
    EUNAUTHORIZED,
    AppError,
    error_code,
    error_message,
)

# Lookup of application error codes to HTTP status codes.
ERROR_STATUS_CODES: dict[str, int] = {
    ECONFLICT: status.HTTP_409_CONFLICT,
    EINVALID: status.HTTP_400_BAD_REQUEST,
    ENOTFOUND: status.HTTP_404_NOT_FOUND,
    ENOTIMPLEMENTED: status.HTTP_501_NOT_IMPLEMENTED,
    EUNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    EINTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_status_code(code: str | None) -> int:
    """Return the HTTP status for an error code; unknown codes map to 500."""
    return ERROR_STATUS_CODES.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def encode_error(err: BaseException) -> JSONResponse:
    """Render an error as ``{"error": message}`` with its mapped status."""
    code = error_code(err)
    if code == EINTERNAL:
        logger.opt(exception=err).error("Internal error: {}", err)
    return JSONResponse(
        status_code=error_status_code(code),
        content={"error": error_message(err)},
    )


async def app_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return encode_error(exc)


def register_error_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    # Unclassified failures still answer with the JSON error body.
    app.add_exception_handler(Exception, app_error_handler)
