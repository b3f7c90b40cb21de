"""
Tagged access errors and their HTTP mapping.

Services raise AccessError with an explicit kind; callers branch on
`kind`, never on message text. The response body only ever carries the
generic message for the kind. `detail` (which table, which rule) is
logged server-side.
"""

import logging
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class AccessErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID = "invalid"
    TRANSIENT = "transient"


STATUS_BY_KIND: dict[AccessErrorKind, int] = {
    AccessErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    AccessErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    AccessErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AccessErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    AccessErrorKind.INVALID: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AccessErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
}

PUBLIC_MESSAGES: dict[AccessErrorKind, str] = {
    AccessErrorKind.UNAUTHENTICATED: "Please sign in",
    AccessErrorKind.FORBIDDEN: "You do not have permission to perform this action",
    AccessErrorKind.NOT_FOUND: "Not found",
    AccessErrorKind.CONFLICT: "This conflicts with existing data",
    AccessErrorKind.INVALID: "The submitted values were rejected",
    AccessErrorKind.TRANSIENT: "Service temporarily unavailable, please retry",
}

# Seconds a client should wait before retrying a transient failure.
RETRY_AFTER_SECONDS = 5


class AccessError(Exception):
    """An expected, classified failure of an authorization-guarded operation."""

    def __init__(self, kind: AccessErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def public_message(self) -> str:
        return PUBLIC_MESSAGES[self.kind]


def unauthenticated(detail: str = "") -> AccessError:
    return AccessError(AccessErrorKind.UNAUTHENTICATED, detail)


def forbidden(detail: str = "") -> AccessError:
    return AccessError(AccessErrorKind.FORBIDDEN, detail)


def not_found(detail: str = "") -> AccessError:
    return AccessError(AccessErrorKind.NOT_FOUND, detail)


def conflict(detail: str = "") -> AccessError:
    return AccessError(AccessErrorKind.CONFLICT, detail)


def invalid(detail: str = "") -> AccessError:
    return AccessError(AccessErrorKind.INVALID, detail)


def transient(detail: str = "") -> AccessError:
    return AccessError(AccessErrorKind.TRANSIENT, detail)


async def access_error_handler(request: Request, exc: AccessError) -> JSONResponse:
    """Render an AccessError as a generic response and log the diagnostics."""
    if exc.kind is AccessErrorKind.TRANSIENT:
        logger.error("%s %s -> %s (%s)", request.method, request.url.path, exc.kind.value, exc.detail)
    else:
        logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.kind.value, exc.detail)

    headers = None
    if exc.kind is AccessErrorKind.TRANSIENT:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
    elif exc.kind is AccessErrorKind.UNAUTHENTICATED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_message, "kind": exc.kind.value},
        headers=headers,
    )


def classify_store_error(exc: SQLAlchemyError) -> AccessError:
    """
    Map a store exception to an AccessError.

    Constraint violations and rejected values come from the request itself
    and are not worth retrying; everything else (connection loss, timeouts)
    is TRANSIENT.
    """
    detail = f"{exc.__class__.__name__}: {exc}"
    if isinstance(exc, IntegrityError):
        return conflict(detail)
    if isinstance(exc, DataError):
        return invalid(detail)
    return transient(detail)


async def backend_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures not handled by a service; never leaks internals."""
    return await access_error_handler(request, classify_store_error(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccessError, access_error_handler)
    app.add_exception_handler(SQLAlchemyError, backend_error_handler)
