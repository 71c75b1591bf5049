"""
Project-wide DRF exception handler.

Every error leaving the API uses the ``{success: false, message}`` envelope.
Unexpected exceptions are logged with their traceback and reported as a
generic 500 so internals never reach the client.
"""
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def _first_message(detail):
    """Flatten DRF error details down to a single human-readable string."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if key in ("detail", "non_field_errors"):
                return message
            return f"{key}: {message}"
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, DjangoValidationError):
        messages = exc.messages if hasattr(exc, "messages") else [str(exc)]
        return Response(
            {"success": False, "message": messages[0] if messages else "Invalid data"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)

    if response is None:
        request = context.get("request")
        path = request.path if request is not None else "?"
        logger.exception(f"Unhandled error on {path}: {exc.__class__.__name__}")
        return Response(
            {"success": False, "message": GENERIC_ERROR_MESSAGE},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response.data = {
        "success": False,
        "message": _first_message(response.data),
        "errors": response.data,
    }
    return response
