"""
Balance store service.

The only code allowed to change ``CreditAccount.balance``. Every change is a
single atomic unit that updates the balance and appends exactly one
``CreditTransaction`` describing it.

Serialization per account is layered:
    1. an in-process re-entrant lock per account (``account_locks``),
    2. ``SELECT ... FOR UPDATE`` on the account row,
    3. an optimistic version check on the UPDATE itself, retried a bounded
       number of times before ``ConcurrencyConflictError`` is surfaced.

Balances are never cached between requests; every check reads the row it is
about to update inside the same transaction.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from apps.wallet.models import (
    CreditAccount,
    CreditTransaction,
    ShareStatus,
    ShareTransfer,
    TransactionType,
)

from .exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from .locks import account_locks

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_amount(value) -> Decimal:
    """
    Convert user input to a two-decimal money amount.

    Raises:
        InvalidAmountError: If the value is not a finite number or has
            more precision than cents.
    """
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    if amount != amount.quantize(CENT):
        raise InvalidAmountError("Amounts cannot have more than two decimal places")

    return amount.quantize(CENT)


def to_positive_amount(value) -> Decimal:
    """Like ``to_amount`` but rejects zero and negative values."""
    amount = to_amount(value)
    if amount <= ZERO:
        raise InvalidAmountError("Amount must be greater than zero")
    return amount


def get_account(*, account_id: UUID) -> CreditAccount:
    """
    Fetch an active account.

    Raises:
        AccountNotFoundError: If the account doesn't exist or is deactivated
    """
    try:
        account = CreditAccount.objects.select_related('user').get(id=account_id)
    except (CreditAccount.DoesNotExist, ValidationError, ValueError):
        raise AccountNotFoundError(f"Account {account_id} not found")

    if not account.is_active:
        raise AccountNotFoundError(f"Account {account_id} is deactivated")

    return account


def get_account_for_user(*, user) -> CreditAccount:
    """Fetch the active wallet that belongs to ``user``."""
    try:
        account = CreditAccount.objects.select_related('user').get(user=user)
    except CreditAccount.DoesNotExist:
        raise AccountNotFoundError(f"No wallet for user {user.pk}")

    if not account.is_active:
        raise AccountNotFoundError("Wallet is deactivated")

    return account


def lock_account(account_id: UUID, *, active_only: bool = True) -> CreditAccount:
    """
    Re-read an account with a row lock.

    Must be called inside ``transaction.atomic()``. The account row is
    always locked before any of its share rows.
    """
    try:
        account = CreditAccount.objects.select_for_update().get(id=account_id)
    except (CreditAccount.DoesNotExist, ValidationError, ValueError):
        raise AccountNotFoundError(f"Account {account_id} not found")

    if active_only and not account.is_active:
        raise AccountNotFoundError(f"Account {account_id} is deactivated")

    return account


def pending_earmark_total(account_id: UUID, *, now=None, exclude_share_id=None) -> Decimal:
    """
    Sum of the account's pending, unexpired share transfers.

    Recomputed from the share records on every call; there is no stored
    earmark field that could drift from them.
    """
    now = now or timezone.now()
    shares = ShareTransfer.objects.filter(
        sender_account_id=account_id,
        status=ShareStatus.PENDING,
        expires_at__gte=now,
    )
    if exclude_share_id is not None:
        shares = shares.exclude(id=exclude_share_id)

    return shares.aggregate(total=Sum('amount'))['total'] or ZERO


def available_balance(account: CreditAccount, *, now=None, exclude_share_id=None) -> Decimal:
    """Balance minus earmarks held by pending share transfers."""
    earmarked = pending_earmark_total(account.id, now=now, exclude_share_id=exclude_share_id)
    return account.balance - earmarked


def get_balance_summary(*, account_id: UUID, now=None) -> dict:
    """
    Read-only wallet summary.

    Returns:
        dict with ``account``, ``balance``, ``earmarked`` and ``available``.
    """
    account = get_account(account_id=account_id)
    earmarked = pending_earmark_total(account.id, now=now)
    return {
        'account': account,
        'balance': account.balance,
        'earmarked': earmarked,
        'available': account.balance - earmarked,
        'currency': account.currency,
    }


def commit_delta(
    *,
    account_id: UUID,
    amount: Decimal,
    transaction_type: str,
    description: str,
    counterparty_account_id: Optional[UUID] = None,
    related_transaction: Optional[CreditTransaction] = None,
    reference: str = '',
    metadata: Optional[dict] = None,
) -> CreditTransaction:
    """Read-check-write one balance change. Caller holds the lock and transaction."""
    max_attempts = max(1, settings.WALLET_MAX_CONFLICT_RETRIES)

    for attempt in range(max_attempts):
        account = lock_account(account_id)
        new_balance = account.balance + amount

        if new_balance < ZERO:
            logger.warning(
                "Rejected %s of %s on account %s: balance %s",
                transaction_type, amount, account.id, account.balance,
            )
            raise InsufficientBalanceError(
                f"Insufficient balance: {account.balance} available, {-amount} required"
            )

        next_version = account.version + 1
        updated = (
            CreditAccount.objects
            .filter(id=account.id, version=account.version)
            .update(balance=new_balance, version=next_version, updated_at=timezone.now())
        )
        if not updated:
            # Another writer committed first, re-read and re-validate
            logger.warning(
                "Version conflict on account %s (attempt %d/%d)",
                account.id, attempt + 1, max_attempts,
            )
            continue

        txn = CreditTransaction.objects.create(
            account_id=account.id,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=new_balance,
            sequence=next_version,
            description=description[:255],
            counterparty_account_id=counterparty_account_id,
            related_transaction=related_transaction,
            reference=reference,
            metadata=metadata or {},
        )
        logger.info(
            "Committed %s of %s on account %s, balance now %s",
            transaction_type, amount, account.id, new_balance,
        )
        return txn

    raise ConcurrencyConflictError(
        f"Could not update account {account_id} after {max_attempts} attempts"
    )


def apply_delta(
    *,
    account_id: UUID,
    amount,
    transaction_type: str,
    description: str,
    counterparty_account_id: Optional[UUID] = None,
    reference: str = '',
    metadata: Optional[dict] = None,
) -> CreditTransaction:
    """
    Apply a signed balance change and append its transaction atomically.

    Args:
        account_id: UUID of the account to change
        amount: Signed amount, positive credits and negative debits
        transaction_type: One of ``TransactionType``
        description: Human-readable line for the history
        counterparty_account_id: Other side of a transfer, if any
        reference: External reference (payment id, share code)
        metadata: Extra JSON data kept for support and disputes

    Returns:
        The created CreditTransaction; its ``balance_after`` is the new balance

    Raises:
        InvalidAmountError: If amount is zero or malformed
        AccountNotFoundError: If the account doesn't exist or is deactivated
        InsufficientBalanceError: If a debit would make the balance negative
        ConcurrencyConflictError: If the optimistic update kept failing
    """
    amount = to_amount(amount)
    if amount == ZERO:
        raise InvalidAmountError("Amount must not be zero")
    if transaction_type not in TransactionType.values:
        raise ValueError(f"Unknown transaction type: {transaction_type}")

    with account_locks(account_id), transaction.atomic():
        return commit_delta(
            account_id=account_id,
            amount=amount,
            transaction_type=transaction_type,
            description=description,
            counterparty_account_id=counterparty_account_id,
            reference=reference,
            metadata=metadata,
        )


def move_credits(
    *,
    from_account_id: UUID,
    to_account_id: UUID,
    amount: Decimal,
    debit_description: str,
    credit_description: str,
    metadata: Optional[dict] = None,
    available_check=None,
) -> tuple:
    """
    Move credits between two accounts as one all-or-nothing unit.

    Both accounts are locked in a fixed global order (by id) so two
    opposite-direction transfers cannot deadlock. If crediting the
    recipient fails, the sender's debit is rolled back with it.

    Args:
        available_check: Optional callable ``(sender_account) -> None`` run
            under the locks before any money moves; it raises to abort.

    Returns:
        (debit_transaction, credit_transaction). The credit references the
        debit through ``related_transaction``; the debit reaches the credit
        through ``mirror``.
    """
    amount = to_positive_amount(amount)

    with account_locks(from_account_id, to_account_id), transaction.atomic():
        # Row locks in the same order as the process locks
        locked = {
            account.id: account
            for account in (
                CreditAccount.objects
                .select_for_update()
                .filter(id__in=[from_account_id, to_account_id])
                .order_by('id')
            )
        }
        for account_id in (from_account_id, to_account_id):
            account = locked.get(account_id)
            if account is None or not account.is_active:
                raise AccountNotFoundError(f"Account {account_id} not found")

        if available_check is not None:
            available_check(locked[from_account_id])

        debit = commit_delta(
            account_id=from_account_id,
            amount=-amount,
            transaction_type=TransactionType.TRANSFER_OUT,
            description=debit_description,
            counterparty_account_id=to_account_id,
            metadata=metadata,
        )
        credit = commit_delta(
            account_id=to_account_id,
            amount=amount,
            transaction_type=TransactionType.TRANSFER_IN,
            description=credit_description,
            counterparty_account_id=from_account_id,
            related_transaction=debit,
            metadata=metadata,
        )
        return debit, credit


def get_transaction_history(*, account_id: UUID):
    """
    Transactions of an account in commit order (oldest first).

    Raises:
        AccountNotFoundError: If the account doesn't exist
    """
    if not CreditAccount.objects.filter(id=account_id).exists():
        raise AccountNotFoundError(f"Account {account_id} not found")

    return (
        CreditTransaction.objects
        .filter(account_id=account_id)
        .select_related('counterparty_account__user')
        .order_by('sequence')
    )
