from __future__ import annotations

from typing import Any, Optional

from signal_edge.utils.error_codes import ErrorCode, ERROR_MESSAGES


def _normalize_error_code(value: ErrorCode | str | None) -> ErrorCode:
    if value is None:
        return ErrorCode.SERVER_ERROR
    if isinstance(value, ErrorCode):
        return value
    try:
        return ErrorCode(str(value))
    except ValueError:
        return ErrorCode.SERVER_ERROR


class EdgeException(Exception):
    """Base exception for the edge layer.

    Converted into a ``{ok: false, error, detail?}`` envelope by the exception handler
    registered in ``signal_edge.main``.
    """

    def __init__(
        self,
        detail: str | None = None,
        *,
        code: ErrorCode | str = ErrorCode.SERVER_ERROR,
        status_code: int = 500,
        extra: Optional[dict[str, Any]] = None,
    ):
        normalized = _normalize_error_code(code)
        if detail is None:
            detail = ERROR_MESSAGES.get(normalized, ERROR_MESSAGES[ErrorCode.SERVER_ERROR])

        self.detail = detail
        self.code = normalized.value
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"ok": False, "error": self.code}
        if self.detail:
            body["detail"] = self.detail
        if self.extra:
            body.update(self.extra)
        return body


class BadRequestException(EdgeException):
    def __init__(
        self,
        detail: str | None = None,
        *,
        code: ErrorCode | str = ErrorCode.INVALID_INPUT,
        extra: Optional[dict[str, Any]] = None,
    ):
        super().__init__(detail, code=code, status_code=400, extra=extra)


class UnauthorizedException(EdgeException):
    def __init__(self, detail: str | None = None, *, code: ErrorCode | str = ErrorCode.UNAUTHENTICATED):
        super().__init__(detail, code=code, status_code=401)


class ForbiddenException(EdgeException):
    def __init__(self, detail: str | None = None, *, code: ErrorCode | str = ErrorCode.FORBIDDEN):
        super().__init__(detail, code=code, status_code=403)


class NotFoundException(EdgeException):
    def __init__(self, detail: str | None = None):
        super().__init__(detail, code=ErrorCode.NOT_FOUND, status_code=404)


class ProviderException(EdgeException):
    """Failure reported by the database/auth provider.

    The provider's own message is preserved in ``detail``.
    """

    def __init__(self, detail: str | None = None, *, status_code: int = 500, provider_code: str | None = None):
        super().__init__(detail, code=ErrorCode.DB_ERROR, status_code=status_code)
        self.provider_code = provider_code


class ConfigurationError(RuntimeError):
    """Required provider configuration is missing. Not recoverable per request."""
