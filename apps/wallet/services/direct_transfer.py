"""
Direct transfer service.

Moves credits between two registered app users. The recipient is resolved
by account id or by phone number; the debit and credit are committed as one
unit through the balance store.
"""

import logging
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError

from apps.accounts.models import normalize_phone_number
from apps.wallet.models import CreditAccount
from apps.wallet.signals import credits_transferred, send_on_commit

from .balance_store import (
    available_balance,
    get_account,
    move_credits,
    to_positive_amount,
)
from .exceptions import (
    AccountNotFoundError,
    InsufficientBalanceError,
    RecipientNotFoundError,
    SelfTransferError,
)

logger = logging.getLogger(__name__)


def lookup_account_by_phone(*, phone: str) -> CreditAccount:
    """
    Find the active wallet registered to a phone number.

    Formatting is ignored: '555-1234' matches '5551234'.

    Raises:
        AccountNotFoundError: If no active account uses the number
    """
    digits = normalize_phone_number(phone)
    if not digits:
        raise AccountNotFoundError("Phone number is required")

    account = (
        CreditAccount.objects
        .select_related('user')
        .filter(user__phone_number=digits, user__is_active=True, is_active=True)
        .order_by('created_at')
        .first()
    )
    if account is None:
        raise AccountNotFoundError("No account uses this phone number")

    return account


def resolve_recipient(
    *,
    recipient_account_id: Optional[UUID] = None,
    recipient_phone: Optional[str] = None,
) -> CreditAccount:
    """
    Resolve a transfer recipient from an account id or a phone number.

    Raises:
        RecipientNotFoundError: If nothing matches
    """
    try:
        if recipient_account_id:
            return get_account(account_id=recipient_account_id)
        if recipient_phone:
            return lookup_account_by_phone(phone=recipient_phone)
    except (AccountNotFoundError, ValidationError) as e:
        raise RecipientNotFoundError(f"Recipient not found: {e}")

    raise RecipientNotFoundError("A recipient account id or phone number is required")


def send_credits(
    *,
    sender_account_id: UUID,
    amount,
    recipient_account_id: Optional[UUID] = None,
    recipient_phone: Optional[str] = None,
    message: str = '',
    now=None,
) -> dict:
    """
    Send credits to another app user.

    The sender's available balance (balance minus pending share earmarks)
    must cover the amount. The check runs under the same locks and
    transaction as the move itself.

    Args:
        sender_account_id: UUID of the sending account
        amount: Credits to send (> 0)
        recipient_account_id: Recipient account id, or
        recipient_phone: Recipient phone number
        message: Optional note stored on both transactions

    Returns:
        dict: ``sender_transaction`` and ``recipient_transaction``

    Raises:
        InvalidAmountError: If amount <= 0
        AccountNotFoundError: If the sender account is missing or deactivated
        RecipientNotFoundError: If the recipient cannot be resolved
        SelfTransferError: If sender and recipient are the same account
        InsufficientBalanceError: If available balance < amount
    """
    amount = to_positive_amount(amount)
    sender = get_account(account_id=sender_account_id)
    recipient = resolve_recipient(
        recipient_account_id=recipient_account_id,
        recipient_phone=recipient_phone,
    )

    if recipient.id == sender.id:
        raise SelfTransferError("Cannot send credits to yourself")

    def ensure_available(locked_sender):
        available = available_balance(locked_sender, now=now)
        if available < amount:
            logger.warning(
                "Rejected transfer of %s from account %s: %s available",
                amount, locked_sender.id, available,
            )
            raise InsufficientBalanceError(
                f"Insufficient balance: {available} available, {amount} required"
            )

    metadata = {'message': message} if message else {}
    debit, credit = move_credits(
        from_account_id=sender.id,
        to_account_id=recipient.id,
        amount=amount,
        debit_description=f"Sent to {recipient.user.get_display_name()}",
        credit_description=f"Received from {sender.user.get_display_name()}",
        metadata=metadata,
        available_check=ensure_available,
    )

    logger.info("Transferred %s from account %s to account %s", amount, sender.id, recipient.id)
    send_on_commit(credits_transferred, sender=CreditAccount, debit=debit, credit=credit)

    return {
        'sender_transaction': debit,
        'recipient_transaction': credit,
        'recipient': recipient,
    }
