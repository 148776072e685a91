"""Application error taxonomy.

Every failure that reaches a boundary carries one of a small, closed set of
error codes. Call sites raise :class:`AppError` with a code and a human
readable message; boundaries translate the code (see ``api.http.errors``).
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Closed set of application error kinds."""

    CONFLICT = "conflict"
    INTERNAL = "internal"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    NOT_IMPLEMENTED = "not_implemented"
    UNAUTHORIZED = "unauthorized"


ECONFLICT = ErrorCode.CONFLICT
EINTERNAL = ErrorCode.INTERNAL
EINVALID = ErrorCode.INVALID
ENOTFOUND = ErrorCode.NOT_FOUND
ENOTIMPLEMENTED = ErrorCode.NOT_IMPLEMENTED
EUNAUTHORIZED = ErrorCode.UNAUTHORIZED

INTERNAL_ERROR_MESSAGE = "Internal error."


class AppError(Exception):
    """Error carrying an application error code and a user-facing message."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        return f"AppError(code={self.code.value!r}, message={self.message!r})"


def errorf(code: ErrorCode, fmt: str, *args: object) -> AppError:
    """Build an :class:`AppError` with a printf-style formatted message."""
    return AppError(code, fmt % args if args else fmt)


def error_code(err: BaseException | None) -> ErrorCode | None:
    """Return the code of an application error.

    ``None`` yields ``None``; any exception that is not an :class:`AppError`
    is reported as ``internal``.
    """
    if err is None:
        return None
    if isinstance(err, AppError):
        return err.code
    return EINTERNAL


def error_message(err: BaseException | None) -> str:
    """Return the user-facing message of an error.

    Internal errors never leak their details.
    """
    if err is None:
        return ""
    if isinstance(err, AppError) and err.code != EINTERNAL:
        return err.message
    return INTERNAL_ERROR_MESSAGE


def wrap_error(label: str, err: BaseException) -> AppError:
    """Prefix ``err`` with an operation label, keeping its error code.

    The caller is expected to ``raise wrap_error(...) from err`` so the
    original exception stays on the chain.
    """
    detail = err.message if isinstance(err, AppError) else str(err)
    return AppError(error_code(err) or EINTERNAL, f"{label}: {detail}")


def not_implemented(operation: str) -> AppError:
    return AppError(ENOTIMPLEMENTED, f"{operation} is not implemented.")


__all__ = [
    "AppError",
    "ErrorCode",
    "ECONFLICT",
    "EINTERNAL",
    "EINVALID",
    "ENOTFOUND",
    "ENOTIMPLEMENTED",
    "EUNAUTHORIZED",
    "INTERNAL_ERROR_MESSAGE",
    "errorf",
    "error_code",
    "error_message",
    "not_implemented",
    "wrap_error",
]
