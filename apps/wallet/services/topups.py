"""
Credit top-ups and staff adjustments.

Purchases arrive from the payment processor or the app store with their own
reference; a reference is only ever credited once.
"""

import logging
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction

from apps.wallet.models import CreditTransaction, TransactionType
from apps.wallet.signals import credits_purchased, send_on_commit

from .balance_store import commit_delta, get_account, to_amount, to_positive_amount
from .exceptions import (
    DuplicatePurchaseError,
    InsufficientPermissionsError,
    InvalidAmountError,
    UnknownProductError,
)
from .locks import account_locks

logger = logging.getLogger(__name__)


def record_credit_purchase(
    *,
    account_id: UUID,
    amount,
    reference: str,
    description: str = '',
    metadata=None,
) -> CreditTransaction:
    """
    Credit a completed payment to a wallet.

    Args:
        account_id: Wallet to credit
        amount: Credits bought (> 0)
        reference: Payment or store transaction id, unique per purchase
        description: History line, defaults to "Added $X.XX credits"

    Raises:
        InvalidAmountError: If amount <= 0 or reference is blank
        AccountNotFoundError: If the account is missing or deactivated
        DuplicatePurchaseError: If the reference was already credited
    """
    amount = to_positive_amount(amount)
    reference = (reference or '').strip()
    if not reference:
        raise InvalidAmountError("A purchase reference is required")

    account = get_account(account_id=account_id)

    with account_locks(account.id):
        if CreditTransaction.objects.filter(
            transaction_type=TransactionType.PURCHASE,
            reference=reference,
        ).exists():
            logger.warning("Duplicate purchase reference %s ignored", reference)
            raise DuplicatePurchaseError(f"Purchase {reference} was already credited")

        try:
            with transaction.atomic():
                txn = commit_delta(
                    account_id=account.id,
                    amount=amount,
                    transaction_type=TransactionType.PURCHASE,
                    description=description or f"Added ${amount:.2f} credits",
                    reference=reference,
                    metadata=metadata,
                )
        except IntegrityError:
            # Same reference credited concurrently on another account
            raise DuplicatePurchaseError(f"Purchase {reference} was already credited")

    send_on_commit(credits_purchased, sender=CreditTransaction, transaction=txn)
    return txn


def credits_for_product(product_id: str) -> Decimal:
    """
    Credits granted by an in-app purchase product.

    Product ids are matched on their suffix, so
    ``com.shop.app.credits_50`` resolves through ``credits_50``.

    Raises:
        UnknownProductError: If no configured product matches
    """
    products = settings.IAP_PRODUCT_CREDITS
    product_id = (product_id or '').strip()

    if product_id in products:
        return to_amount(products[product_id])

    # Longest key first so credits_100 never resolves as credits_10
    for key in sorted(products, key=len, reverse=True):
        if product_id.endswith(key):
            return to_amount(products[key])

    raise UnknownProductError(f"Unknown product: {product_id}")


def record_iap_purchase(
    *,
    account_id: UUID,
    product_id: str,
    transaction_id: str,
    platform: str = '',
    restored: bool = False,
) -> CreditTransaction:
    """
    Credit a verified in-app purchase.

    Receipt validation with the store happens before this is called.

    Raises:
        UnknownProductError: If the product grants no credits
        DuplicatePurchaseError: If the store transaction was already credited
    """
    amount = credits_for_product(product_id)
    metadata = {'product_id': product_id, 'platform': platform}
    if restored:
        description = f"Restored: {product_id}"
        metadata['restored'] = True
    else:
        description = f"In-app purchase: ${amount:.2f} credits"

    return record_credit_purchase(
        account_id=account_id,
        amount=amount,
        reference=transaction_id,
        description=description,
        metadata=metadata,
    )


def restore_iap_purchases(*, account_id: UUID, receipts, platform: str = '') -> dict:
    """
    Credit a batch of verified store receipts, e.g. after a reinstall.

    Receipts whose transaction was already credited, or whose product
    grants no credits, are skipped. Each credited receipt commits on its own.

    Args:
        account_id: Wallet to credit
        receipts: Iterable of ``{'product_id', 'transaction_id'}`` dicts
        platform: Store the receipts come from

    Returns:
        dict with ``credits_restored`` (Decimal) and ``restored``, one entry
        per credited receipt

    Raises:
        AccountNotFoundError: If the account is missing or deactivated
    """
    account = get_account(account_id=account_id)
    total = Decimal('0.00')
    restored = []

    for receipt in receipts:
        product_id = receipt.get('product_id', '')
        transaction_id = receipt.get('transaction_id', '')
        try:
            txn = record_iap_purchase(
                account_id=account.id,
                product_id=product_id,
                transaction_id=transaction_id,
                platform=platform,
                restored=True,
            )
        except (DuplicatePurchaseError, UnknownProductError, InvalidAmountError) as e:
            logger.info("Skipped restore of %s on account %s: %s", transaction_id, account.id, e)
            continue

        total += txn.amount
        restored.append({
            'product_id': product_id,
            'transaction_id': transaction_id,
            'credits': txn.amount,
        })

    logger.info(
        "Restored %d purchase(s) worth %s on account %s",
        len(restored), total, account.id,
    )
    return {'credits_restored': total, 'restored': restored}


def adjust_balance(*, account_id: UUID, amount, staff, reason: str = '') -> CreditTransaction:
    """
    Staff correction of a wallet balance (refunds, goodwill, mistakes).

    A negative amount removes credits but can never take the balance below
    zero.

    Raises:
        InsufficientPermissionsError: If ``staff`` is not a staff member
        InvalidAmountError: If amount is zero or malformed
        InsufficientBalanceError: If a removal exceeds the balance
    """
    if not getattr(staff, 'is_staff', False):
        raise InsufficientPermissionsError("Only staff can adjust balances")

    amount = to_amount(amount)
    if amount == 0:
        raise InvalidAmountError("Amount must not be zero")

    account = get_account(account_id=account_id)
    verb = 'added' if amount > 0 else 'removed'
    description = reason or f"Credits {verb} by staff"

    with account_locks(account.id), transaction.atomic():
        txn = commit_delta(
            account_id=account.id,
            amount=amount,
            transaction_type=TransactionType.ADMIN_ADJUSTMENT,
            description=description,
            metadata={'adjusted_by': str(staff.pk), 'reason': reason},
        )

    logger.info("Staff %s adjusted account %s by %s", staff.pk, account.id, amount)
    return txn
