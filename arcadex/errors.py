"""Structured error taxonomy and the normalizer feeding it."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Mapping

import httpx


class ErrorKind(str, Enum):
    """Categories every failure is sorted into."""

    TRANSPORT = "transport"
    AUTH = "auth"
    VALIDATION = "validation"
    SERVER = "server"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"
    MIGRATION_FAILED = "migration_failed"


class ArcadexError(Exception):
    """Base exception for all client errors.

    Instances are treated as values: the attributes are exposed read-only and
    never change after construction.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        *,
        detail: str | None = None,
        status: int | None = None,
    ) -> None:
        self._kind = ErrorKind(kind)
        self._message = message
        self._detail = detail
        self._status = status
        super().__init__(self._format())

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str | None:
        return self._message

    @property
    def detail(self) -> str | None:
        return self._detail

    @property
    def status(self) -> int | None:
        return self._status

    def __str__(self) -> str:
        return self._format()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self._kind.value!r}, message={self._message!r}, "
            f"detail={self._detail!r}, status={self._status!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArcadexError):
            return NotImplemented
        return (type(self), self._kind, self._message, self._detail, self._status) == (
            type(other),
            other._kind,
            other._message,
            other._detail,
            other._status,
        )

    def __hash__(self) -> int:
        return hash((type(self), self._kind, self._message, self._detail, self._status))

    def _format(self) -> str:
        if self._message and self._detail:
            return f"{self._message}: {self._detail}"
        return self._message or self._detail or "Unknown error"


class MigrationFailedError(ArcadexError):
    """Composite error naming the migration version and direction that failed."""

    def __init__(self, version: int, operation: str, cause: BaseException) -> None:
        self._version = version
        self._operation = operation
        self._cause = cause
        super().__init__(
            ErrorKind.MIGRATION_FAILED,
            f"Migration {version} failed during {operation}",
            detail=str(cause),
            status=cause.status if isinstance(cause, ArcadexError) else None,
        )
        self.__cause__ = cause

    @property
    def version(self) -> int:
        return self._version

    @property
    def operation(self) -> str:
        return self._operation

    @property
    def cause(self) -> BaseException:
        return self._cause

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MigrationFailedError):
            return NotImplemented
        return (self._version, self._operation, self._cause) == (
            other._version,
            other._operation,
            other._cause,
        )

    def __hash__(self) -> int:
        return hash((self._version, self._operation, str(self._cause)))


def validation_error(message: str, detail: str | None = None) -> ArcadexError:
    return ArcadexError(ErrorKind.VALIDATION, message, detail=detail)


# ============================================================================
# Normalizer
# ============================================================================

_STATUS_KINDS: Mapping[int, ErrorKind] = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.AUTH,
    403: ErrorKind.AUTH,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
}


def kind_for_status(status: int) -> ErrorKind:
    """Map an HTTP status code onto the error taxonomy."""

    if status in _STATUS_KINDS:
        return _STATUS_KINDS[status]
    if 500 <= status <= 599:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def from_response(status: int, body: Any) -> ArcadexError:
    """Build the error for a non-success response.

    `body` is the decoded JSON payload when the server sent one, or the raw
    text otherwise. The server reports problems as ``{"error", "detail"}``.
    """

    kind = kind_for_status(status)
    if isinstance(body, Mapping) and body.get("error") is not None:
        detail = body.get("detail")
        return ArcadexError(
            kind,
            str(body["error"]),
            detail=str(detail) if detail is not None else None,
            status=status,
        )
    return ArcadexError(kind, f"HTTP {status}", detail=_raw_detail(body), status=status)


def from_transport(exc: BaseException) -> ArcadexError:
    """Build the error for a request that never produced a response."""

    if isinstance(exc, httpx.TimeoutException):
        detail = f"timeout: {exc}"
    else:
        detail = f"{type(exc).__name__}: {exc}"
    return ArcadexError(ErrorKind.TRANSPORT, "Connection failed", detail=detail)


def malformed_response(status: int, text: str) -> ArcadexError:
    return ArcadexError(ErrorKind.SERVER, "Malformed response", detail=text or None, status=status)


def _raw_detail(body: Any) -> str | None:
    if body is None or body == "":
        return None
    if isinstance(body, str):
        return body
    return json.dumps(body, sort_keys=True, default=str)


__all__ = [
    "ArcadexError",
    "ErrorKind",
    "MigrationFailedError",
    "from_response",
    "from_transport",
    "kind_for_status",
    "malformed_response",
    "validation_error",
]
