"""
Error responses for the Starbyte API.

Two body shapes are in use:

- Marketplace endpoints answer errors as
      {"error": {"message": "Insufficient stardust", "code": "INSUFFICIENT_BALANCE"}}
- The delivery resolution endpoint keeps the ResolvedDelivery shape even
  when it fails, so clients handle one type:
      {"ok": false, "message": "No fetch URL provided"}

Usage:
    from starbyte.utils.errors import purchase_rejected

    return purchase_rejected(outcome.error)
"""
import logging
import re
from enum import Enum
from flask import jsonify
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Purchase rejections the client shows as "not enough Stardust"
_INSUFFICIENT = re.compile(r'insufficient', re.IGNORECASE)


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # Session (401)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Request shape (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Lookup (404)
    NOT_FOUND = "NOT_FOUND"
    REWARD_NOT_FOUND = "REWARD_NOT_FOUND"

    # A checkout for this star is already running (409)
    STATE_CONFLICT = "STATE_CONFLICT"

    # Purchase Authority rejections (400)
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    OPERATION_FAILED = "OPERATION_FAILED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    message: str,
    code: Union[ErrorCode, str] = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
) -> tuple:
    """
    Build an {"error": {message, code}} response.

    Args:
        message: Message shown to the star
        code: ErrorCode member or a StarbyteError code string
        status_code: HTTP status code
        log_error: Log 4xx as warnings and 5xx as errors

    Returns:
        Tuple of (response, status_code) for Flask
    """
    code_value = code.value if isinstance(code, ErrorCode) else code

    if log_error and status_code >= 500:
        logger.error(f"API error [{code_value}]: {message}")
    elif log_error and status_code >= 400:
        logger.warning(f"API error [{code_value}]: {message}")

    return jsonify({'error': {'message': message, 'code': code_value}}), status_code


def exception_response(error) -> tuple:
    """Response for a StarbyteError raised out of a view."""
    return error_response(
        error.message,
        error.code,
        error.status_code,
        log_error=error.status_code >= 500
    )


def purchase_rejected(message: Optional[str]) -> tuple:
    """
    400 for a purchase the Purchase Authority refused.

    The message is passed through verbatim; the code tells clients whether
    to show the "insufficient stardust" prompt or a generic failure.
    """
    message = message or 'Failed to purchase'
    code = ErrorCode.INSUFFICIENT_BALANCE if _INSUFFICIENT.search(message) else ErrorCode.OPERATION_FAILED
    return error_response(message, code, 400, log_error=False)


def resolution_error(message: str, status_code: int = 400) -> tuple:
    """{ok: false, message} response for the delivery resolution endpoint."""
    if status_code >= 500:
        logger.error(f"Delivery resolution error: {message}")
    return jsonify({'ok': False, 'message': message}), status_code


def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST) -> tuple:
    return error_response(message, code, 400, log_error=False)


def unauthorized(message: str = "Authentication required", code: ErrorCode = ErrorCode.AUTH_REQUIRED) -> tuple:
    return error_response(message, code, 401, log_error=False)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND) -> tuple:
    return error_response(message, code, 404, log_error=False)


def conflict(message: str, code: ErrorCode = ErrorCode.STATE_CONFLICT) -> tuple:
    return error_response(message, code, 409, log_error=False)
