"""
Utility modules for Starbyte.
"""
from .logging_config import setup_logging
from .errors import (
    ErrorCode,
    error_response,
    exception_response,
    purchase_rejected,
    resolution_error,
    bad_request,
    unauthorized,
    not_found,
    conflict
)
from .exceptions import (
    StarbyteError,
    NotFoundError,
    StarNotFoundError,
    RewardNotFoundError,
    ValidationError,
    InsufficientStardustError,
    PurchaseInProgressError,
    AuthorizationError,
    ConfigurationError
)
