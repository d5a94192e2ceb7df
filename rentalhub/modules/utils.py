import json
import logging
import secrets

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


def api_response(message, status, data=None, **kwargs):
    if data is None:
        data = {}
    response = dict(
        requestTime=timezone.now(),
        requestType="outbound",
        referenceId=secrets.token_hex(30),
        status=bool(status),
        message=message,
        data=data,
        **kwargs,
    )
    logger.debug(response)
    return response


def error_response(exc):
    """Build the envelope for a RentalHubError."""
    return Response(
        api_response(
            message=exc.message, status=False, data=exc.field_errors),
        status=exc.status_code,
    )


def server_error_response(message):
    return Response(
        api_response(message=message, status=False),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _check_api_key(request):
    x_api_key = request.headers.get("X-Api-Key", None) or request.META.get(
        "HTTP_X_API_KEY", None
    )
    if not x_api_key:
        return False, ("Missing or Incorrect "
                       "Request-Header field 'X-Api-Key'")
    if x_api_key != settings.X_API_KEY:
        return False, "Invalid value for Request-Header field 'X-Api-Key'"
    return True, ""


def incoming_request_checks(request, require_data_field: bool = True) -> tuple:
    """
    Validate an inbound write request.

    Requests carry the ``X-Api-Key`` header and a body shaped as
    ``{"requestType": "inbound", "data": {...}}``. Returns ``(True, data)``
    or ``(False, error_message)``.
    """
    valid, message = _check_api_key(request)
    if not valid:
        return False, message

    request_type = request.data.get("requestType", None)
    data = request.data.get("data", {})

    if not request_type:
        return False, "'requestType' field is required"

    if request_type != "inbound":
        return False, "Invalid 'requestType' value"

    # multipart/form-data sends 'data' as a JSON string
    if isinstance(data, str):
        try:
            data = json.loads(data or "{}")
        except json.JSONDecodeError:
            return False, "'data' field must be a JSON object"

    if not isinstance(data, dict):
        return False, "'data' field must be a JSON object"

    if require_data_field and not data:
        return (
            False,
            "'data' field was not passed or is empty. "
            "It is required to contain all request data",
        )

    return True, data


def get_incoming_request_checks(request) -> tuple:
    return _check_api_key(request)
