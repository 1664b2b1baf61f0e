"""
Custom exceptions for Starbyte business logic.

These exceptions provide more specific error handling than generic Exception,
allowing for better error messages and appropriate HTTP status codes.
"""


class StarbyteError(Exception):
    """Base exception for all Starbyte business logic errors."""

    status_code = 400

    def __init__(self, message: str, code: str = "STARBYTE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(StarbyteError):
    """Resource not found."""

    status_code = 404

    def __init__(self, resource: str, identifier=None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with ID {identifier} not found"
        super().__init__(message, f"{resource.upper()}_NOT_FOUND")


class StarNotFoundError(NotFoundError):
    """Star not found."""

    def __init__(self, identifier=None):
        super().__init__("Star", identifier)


class RewardNotFoundError(NotFoundError):
    """Reward not found."""

    def __init__(self, identifier=None):
        super().__init__("Reward", identifier)


class ValidationError(StarbyteError):
    """Invalid input data."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"INVALID_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)


class InsufficientStardustError(StarbyteError):
    """Not enough stardust for the operation."""

    def __init__(self, current: int, required: int):
        self.current = current
        self.required = required
        super().__init__("Insufficient stardust", "INSUFFICIENT_BALANCE")


class PurchaseInProgressError(StarbyteError):
    """A checkout for the same star is already running."""

    status_code = 409

    def __init__(self, star_id: str = None):
        self.star_id = star_id
        super().__init__("Purchase already in progress", "STATE_CONFLICT")


class AuthorizationError(StarbyteError):
    """Star not authorized for this operation."""

    status_code = 401

    def __init__(self, message: str = "Not authorized for this operation"):
        super().__init__(message, "AUTHORIZATION_ERROR")


class ConfigurationError(StarbyteError):
    """Application configuration error."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")
