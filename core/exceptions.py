from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

from events.exceptions import FestError

logger = logging.getLogger("fest.api")


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    response = drf_exception_handler(exc, context)

    # If DRF handled it, wrap it
    if response is not None:
        body = {
            "success": False,
            "status_code": response.status_code,
            "errors": response.data,
        }
        if isinstance(exc, FestError):
            body["code"] = exc.code
            body["message"] = exc.message
            body.update(exc.extra)
        return Response(body, status=response.status_code, headers=_passthrough_headers(response))

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _passthrough_headers(response):
    # Keep Retry-After / WWW-Authenticate set by DRF.
    return {
        key: value
        for key, value in response.items()
        if key in ("Retry-After", "WWW-Authenticate")
    }
