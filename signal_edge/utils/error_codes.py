from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Machine error codes carried in the ``error`` field of the response envelope."""

    # Validation (400)
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_JSON = "INVALID_JSON"
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_CURRENCY = "INVALID_CURRENCY"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_METHOD = "INVALID_METHOD"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    DAILY_CAP_EXCEEDED = "DAILY_CAP_EXCEEDED"
    BAD_REQUEST = "BAD_REQUEST"

    # Auth (401/403)
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_JWT_FORMAT = "INVALID_JWT_FORMAT"
    FORBIDDEN = "FORBIDDEN"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"

    # Lookup (404)
    NOT_FOUND = "NOT_FOUND"

    # Provider / internal (500)
    DB_ERROR = "DB_ERROR"
    SERVER_MISCONFIG = "SERVER_MISCONFIG"
    SERVER_ERROR = "SERVER_ERROR"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "Invalid request data",
    ErrorCode.INVALID_JSON: "Invalid JSON in request body",
    ErrorCode.MISSING_FIELDS: "Missing required fields",
    ErrorCode.INVALID_CURRENCY: "Unsupported currency",
    ErrorCode.INVALID_AMOUNT: "Invalid amount",
    ErrorCode.INVALID_METHOD: "Withdrawal method not found",
    ErrorCode.INSUFFICIENT_BALANCE: "Insufficient balance",
    ErrorCode.DAILY_CAP_EXCEEDED: "Daily withdrawal limit exceeded",
    ErrorCode.BAD_REQUEST: "Bad request",
    ErrorCode.UNAUTHENTICATED: "Missing or invalid Authorization header",
    ErrorCode.INVALID_JWT_FORMAT: "Authorization header must be in format 'Bearer <token>'",
    ErrorCode.FORBIDDEN: "Forbidden",
    ErrorCode.PROFILE_NOT_FOUND: "User profile not found",
    ErrorCode.NOT_FOUND: "Not Found",
    ErrorCode.DB_ERROR: "Database error",
    ErrorCode.SERVER_MISCONFIG: "Missing database configuration",
    ErrorCode.SERVER_ERROR: "Internal server error",
}
