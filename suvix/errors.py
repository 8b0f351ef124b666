class SuviXError(Exception):
    """Base class for errors surfaced to the user as a readable message."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticated(SuviXError):
    default_message = "Authentication error. Please login again."


class ApiError(SuviXError):
    default_message = "Request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaError(ApiError):
    """The backend answered with a payload of an unexpected shape."""

    default_message = "Unexpected response from server"


class GatewayLoadError(SuviXError):
    default_message = "Failed to load payment gateway"


class PaymentError(SuviXError):
    default_message = "Payment failed"


class RatingValidationError(SuviXError):
    default_message = "Please rate all categories before submitting"
