from typing import Optional


class RifariaError(Exception):
    """Base for errors that map onto an HTTP response with a user-facing message."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RifariaError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(RifariaError):
    status_code = 401
    default_message = "Not authenticated"


class NotFoundError(RifariaError):
    status_code = 404
    default_message = "Not found"


class ConflictError(RifariaError):
    status_code = 409
    default_message = "Conflict"


class PaymentGatewayError(RifariaError):
    status_code = 500
    default_message = "Payment gateway error"


class InternalError(RifariaError):
    pass
