"""
Staff verification console queries.

Straight projections over share transfers. Overdue pending shares are swept
to ``expired`` first so a listing never shows a dead code as redeemable.
"""

from django.db.models import QuerySet

from apps.wallet.models import ShareStatus, ShareTransfer

from .exceptions import InvalidStateError
from .share_transfer import expire_overdue_shares

ORDERING_FIELDS = ('created_at', '-created_at', 'expires_at', '-expires_at', 'verified_at', '-verified_at')


def list_share_transfers(*, status=None, ordering='-created_at', now=None) -> QuerySet:
    """
    Share transfers for the console, optionally filtered by status.

    Args:
        status: One of ``ShareStatus`` or None for every share
        ordering: One of ``ORDERING_FIELDS``

    Raises:
        InvalidStateError: If status or ordering is not recognised
    """
    if status and status not in ShareStatus.values:
        raise InvalidStateError(f"Unknown share status: {status}")
    if ordering not in ORDERING_FIELDS:
        raise InvalidStateError(f"Cannot order shares by {ordering}")

    expire_overdue_shares(now=now)

    shares = ShareTransfer.objects.select_related(
        'sender_account__user',
        'verified_by',
    )
    if status:
        shares = shares.filter(status=status)

    return shares.order_by(ordering)


def list_pending_shares(*, now=None) -> QuerySet:
    """Codes that can still be redeemed, oldest first."""
    return list_share_transfers(status=ShareStatus.PENDING, ordering='created_at', now=now)


def list_all_shares(*, now=None) -> QuerySet:
    return list_share_transfers(now=now)
