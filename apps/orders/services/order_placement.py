"""
Order debit service.

Placing an order and paying for it is one step: the order row and its
``order_debit`` transaction are committed together, or neither exists.
"""

import logging
from uuid import UUID

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.orders.models import Order, OrderStatus
from apps.orders.signals import order_debited
from apps.wallet.models import TransactionType
from apps.wallet.services import (
    InsufficientCreditsError,
    InvalidAmountError,
    available_balance,
    commit_delta,
    lock_account,
    to_amount,
    to_positive_amount,
)
from apps.wallet.services.locks import account_locks
from apps.wallet.signals import send_on_commit

from .exceptions import InvalidOrderError, OrderNotFoundError

logger = logging.getLogger(__name__)


def _clean_items(items) -> list:
    """Validate order lines and return them JSON-ready."""
    if not items:
        raise InvalidOrderError("An order needs at least one item")

    cleaned = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict) or not item.get('name'):
            raise InvalidOrderError(f"Item {position} has no name")

        try:
            quantity = int(item.get('quantity', 1))
        except (TypeError, ValueError):
            raise InvalidOrderError(f"Item {position} has an invalid quantity")
        if quantity < 1:
            raise InvalidOrderError(f"Item {position} has an invalid quantity")

        try:
            price = to_amount(item.get('price', 0))
        except InvalidAmountError:
            raise InvalidOrderError(f"Item {position} has an invalid price")
        if price < 0:
            raise InvalidOrderError(f"Item {position} has an invalid price")

        line = {'name': str(item['name']), 'quantity': quantity, 'price': str(price)}
        if item.get('size'):
            line['size'] = item['size']
        if item.get('options'):
            line['options'] = item['options']
        cleaned.append(line)

    return cleaned


def place_order(*, account_id: UUID, items, total, now=None) -> Order:
    """
    Place an order and debit its total from the wallet.

    The check is against the available balance (balance minus pending
    share earmarks), read under the account lock in the same transaction
    as the debit. Two concurrent orders that each fit the balance but not
    together cannot both succeed.

    Args:
        account_id: UUID of the paying account
        items: List of order lines ``{name, quantity, price, size?, options?}``
        total: Order total in credits (> 0)

    Returns:
        Order: the created order, linked to its debit transaction

    Raises:
        InvalidAmountError: If total <= 0 or malformed
        InvalidOrderError: If items are missing or malformed
        AccountNotFoundError: If the account is missing or deactivated
        InsufficientCreditsError: If available balance < total
    """
    total = to_positive_amount(total)
    lines = _clean_items(items)

    with account_locks(account_id), transaction.atomic():
        account = lock_account(account_id)

        available = available_balance(account, now=now)
        if available < total:
            logger.warning(
                "Rejected order of %s on account %s: %s available",
                total, account.id, available,
            )
            raise InsufficientCreditsError(
                f"Insufficient credits: {available} available, {total} required"
            )

        order = Order.objects.create(
            account=account,
            items=lines,
            total=total,
            status=OrderStatus.PROCESSING,
        )
        txn = commit_delta(
            account_id=account.id,
            amount=-total,
            transaction_type=TransactionType.ORDER_DEBIT,
            description=f"Order #{order.short_id}",
            reference=f"order:{order.id}",
            metadata={'order_id': str(order.id), 'item_count': sum(line['quantity'] for line in lines)},
        )
        order.transaction = txn
        order.save(update_fields=['transaction', 'updated_at'])

        send_on_commit(order_debited, sender=Order, order=order, transaction=txn)

    logger.info("Order %s placed on account %s for %s", order.id, account.id, total)
    return order


def get_order_for_user(*, order_id: UUID, user) -> Order:
    """
    Raises:
        OrderNotFoundError: If missing or placed by someone else
    """
    try:
        return Order.objects.select_related('transaction').get(
            id=order_id,
            account__user=user,
        )
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise OrderNotFoundError(f"Order {order_id} not found")


def list_orders_for_user(*, user):
    return (
        Order.objects
        .filter(account__user=user)
        .select_related('transaction')
        .order_by('-created_at')
    )
