import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Flatten DRF error detail (dict / list / string) into one readable message."""
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_message(value)
            if field in ("detail", "non_field_errors", "error"):
                return message
            return f"{field}: {message}"
        return "Invalid request"
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else "Invalid request"
    return str(detail)


def envelope_exception_handler(exc, context):
    """
    Render every API error as { "success": false, "error": "..." }.
    Anything DRF does not know about becomes a generic 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception(f"Unhandled error in {view.__class__.__name__ if view else 'view'}: {exc}")
        return Response(
            {"success": False, "error": "An internal error occurred."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    body = {"success": False, "error": _first_message(response.data)}
    if isinstance(exc, ValidationError) and isinstance(response.data, dict):
        body["errors"] = response.data
    response.data = body
    return response
