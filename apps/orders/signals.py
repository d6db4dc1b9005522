"""
Order signals, sent once the order and its debit have committed.
"""

from django.dispatch import Signal


# kwargs: order, transaction
order_debited = Signal()
