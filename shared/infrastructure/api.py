"""
DRF integration for the domain error taxonomy.
"""

import logging

from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler  # type: ignore

from shared.domain.errors import BookingError

logger = logging.getLogger(__name__)


def booking_exception_handler(exc, context):
    """Render BookingError subclasses with their own status and payload."""
    if isinstance(exc, BookingError):
        view = context.get('view')
        logger.info(
            f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.detail}"
        )
        return Response(exc.to_dict(), status=exc.status_code)
    return exception_handler(exc, context)
