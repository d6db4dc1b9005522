"""
HTTP mapping of wallet service errors.

Shared by every app whose views call wallet services.
"""
import logging

from rest_framework import status
from rest_framework.response import Response

from apps.wallet.services.exceptions import (
    AccountNotFoundError,
    AlreadyCancelledError,
    AlreadyVerifiedError,
    CodeExpiredError,
    CodeNotFoundError,
    ConcurrencyConflictError,
    DuplicatePurchaseError,
    InsufficientBalanceError,
    InsufficientPermissionsError,
    InvalidStateError,
    ShareTransferNotFoundError,
)

logger = logging.getLogger(__name__)

# First match wins, subclasses before their bases
ERROR_STATUS = [
    (InsufficientPermissionsError, status.HTTP_403_FORBIDDEN),
    (CodeExpiredError, status.HTTP_410_GONE),
    (InsufficientBalanceError, status.HTTP_402_PAYMENT_REQUIRED),
    ((AccountNotFoundError, CodeNotFoundError, ShareTransferNotFoundError), status.HTTP_404_NOT_FOUND),
    (
        (
            AlreadyVerifiedError,
            AlreadyCancelledError,
            InvalidStateError,
            ConcurrencyConflictError,
            DuplicatePurchaseError,
        ),
        status.HTTP_409_CONFLICT,
    ),
]


def status_for(exc) -> int:
    for error_class, http_status in ERROR_STATUS:
        if isinstance(exc, error_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def error_response(exc) -> Response:
    """``{"error", "code"}`` response for a service error."""
    http_status = status_for(exc)
    if http_status == status.HTTP_409_CONFLICT:
        logger.warning("Request rejected (%s): %s", exc.code, exc)
    return Response({'error': str(exc), 'code': exc.code}, status=http_status)
