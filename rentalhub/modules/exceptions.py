"""
Domain errors raised by the service layer.

Every error carries the HTTP status the REST layer answers with, so views
only need a single ``except RentalHubError`` branch.
"""
from rest_framework import status


class RentalHubError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message=None, field_errors=None, status_code=None):
        self.message = message or self.default_message
        self.field_errors = field_errors or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def __str__(self):
        return self.message


class Unauthorized(RentalHubError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication credentials were not provided"


class Forbidden(RentalHubError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You are not allowed to perform this action"


class NotFound(RentalHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class ValidationError(RentalHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class InvalidRangeError(ValidationError):
    default_message = "End date must be after start date"


class InvalidPriceError(ValidationError):
    default_message = "Rental price must be greater than zero"


class InvalidAmount(ValidationError):
    default_message = "Payment amount must be greater than zero"


class Conflict(RentalHubError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with the current state"


class DuplicatePayment(Conflict):
    default_message = "A payment already exists for this rental request"


class AlreadyExists(Conflict):
    default_message = "Resource already exists"


class InvalidState(RentalHubError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current state"


class ExternalServiceError(RentalHubError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "External service failure"


def raise_serializer_error_msg(errors: dict):
    """Turn DRF serializer errors into a ValidationError with the first
    message as the summary."""
    message = "Invalid input"
    for field, value in errors.items():
        detail = value[0] if isinstance(value, (list, tuple)) and value else value # noqa
        message = f"{field}: {detail}" if field != "non_field_errors" else f"{detail}" # noqa
        break
    raise ValidationError(message, field_errors=errors)
