"""
Wallet domain signals.

Sent only after the surrounding database transaction commits, so receivers
(push notifications, analytics) never observe money movements that were
rolled back. Receivers must not raise; delivery is best effort.
"""

from django.db import transaction
from django.dispatch import Signal


# kwargs: debit, credit
credits_transferred = Signal()

# kwargs: share, transaction
share_redeemed = Signal()

# kwargs: transaction
credits_purchased = Signal()


def send_on_commit(signal, sender, **kwargs):
    """Dispatch ``signal`` once the current transaction commits."""
    transaction.on_commit(lambda: signal.send_robust(sender=sender, **kwargs))
