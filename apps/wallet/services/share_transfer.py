"""
Share-transfer workflow ("share credits via SMS").

A sender shares credits with a phone number that has no app account. The
workflow is a small saga:

    initiate_share  -> pending share + verification code for the SMS
    redeem_share    -> staff enter the code at the counter, sender is debited
    cancel_share    -> sender withdraws the share before it is redeemed
    (time)          -> an unredeemed share expires after the window closes

State machine::

    pending -> verified   (terminal, redeemed)
    pending -> expired    (terminal, window passed)
    pending -> cancelled  (terminal, sender withdrew)

No money moves until redemption. While pending, the amount is an earmark
that reduces the sender's available balance, so a sender cannot promise the
same credits twice.
"""

import logging
import secrets
from datetime import timedelta
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.accounts.models import normalize_phone_number
from apps.wallet.models import ShareStatus, ShareTransfer, TransactionType
from apps.wallet.signals import send_on_commit, share_redeemed

from .balance_store import (
    commit_delta,
    available_balance,
    lock_account,
    to_positive_amount,
)
from .exceptions import (
    AlreadyCancelledError,
    AlreadyVerifiedError,
    CodeExpiredError,
    CodeNotFoundError,
    InsufficientBalanceError,
    InsufficientPermissionsError,
    InvalidPhoneNumberError,
    InvalidStateError,
    ShareTransferNotFoundError,
)
from .locks import account_locks, share_code_lock

logger = logging.getLogger(__name__)

# No 0/O or 1/I, codes are read out loud and typed by staff
CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'

MIN_PHONE_DIGITS = 6


def generate_verification_code(length=None) -> str:
    """Random human-enterable code (32**6, about a billion, for 6 chars)."""
    length = length or settings.SHARE_CODE_LENGTH
    return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code) -> str:
    return (code or '').strip().replace(' ', '').replace('-', '').upper()


def compose_share_sms(share: ShareTransfer) -> str:
    """Body of the SMS the sender's phone sends to the recipient."""
    shop = settings.WALLET_SHOP_NAME
    sender = share.sender_account.user.get_display_name()
    hours = settings.SHARE_TRANSFER_EXPIRY_HOURS
    return (
        f"You've received ${share.amount:.2f} {shop} credits from {sender}! "
        f"Show this code at our store: {share.verification_code}. "
        f"Valid for {hours} hours. {shop} Coffee Shop"
    )


def initiate_share(
    *,
    sender_account_id: UUID,
    recipient_phone: str,
    amount,
    now=None,
) -> tuple:
    """
    Create a pending share transfer to a phone number.

    The sender's available balance (balance minus their other pending
    shares) must cover the amount. Nothing is debited yet.

    Args:
        sender_account_id: UUID of the sender's account
        recipient_phone: Phone number the SMS goes to (any formatting)
        amount: Credits to share
        now: Creation time, defaults to ``timezone.now()``

    Returns:
        tuple: (ShareTransfer, sms_body)

    Raises:
        InvalidAmountError: If amount <= 0
        InvalidPhoneNumberError: If the phone number has too few digits
        AccountNotFoundError: If the sender account is missing or deactivated
        InsufficientBalanceError: If available balance < amount
        RuntimeError: If no unique code could be generated
    """
    amount = to_positive_amount(amount)
    phone = normalize_phone_number(recipient_phone)
    if len(phone) < MIN_PHONE_DIGITS:
        raise InvalidPhoneNumberError("A valid recipient phone number is required")

    now = now or timezone.now()
    expires_at = now + timedelta(hours=settings.SHARE_TRANSFER_EXPIRY_HOURS)
    max_attempts = settings.SHARE_CODE_MAX_ATTEMPTS

    with account_locks(sender_account_id), transaction.atomic():
        account = lock_account(sender_account_id)

        available = available_balance(account, now=now)
        if available < amount:
            logger.warning(
                "Rejected share of %s from account %s: %s available",
                amount, account.id, available,
            )
            raise InsufficientBalanceError(
                f"Insufficient balance: {available} available, {amount} required"
            )

        for attempt in range(max_attempts):
            code = generate_verification_code()
            if ShareTransfer.objects.filter(
                verification_code=code,
                status=ShareStatus.PENDING,
            ).exists():
                continue

            try:
                with transaction.atomic():
                    share = ShareTransfer.objects.create(
                        sender_account=account,
                        recipient_phone=phone,
                        amount=amount,
                        verification_code=code,
                        status=ShareStatus.PENDING,
                        created_at=now,
                        expires_at=expires_at,
                    )
            except IntegrityError:
                # Another request took the same code between check and insert
                continue

            logger.info(
                "Share %s of %s created by account %s, expires %s",
                share.id, amount, account.id, expires_at.isoformat(),
            )
            return share, compose_share_sms(share)

    raise RuntimeError(
        f"Failed to generate unique verification code after {max_attempts} attempts"
    )


def _find_share_by_code(code: str):
    """Live share for the code, else the most recent one that used it."""
    share = (
        ShareTransfer.objects
        .filter(verification_code=code, status=ShareStatus.PENDING)
        .first()
    )
    if share is None:
        share = (
            ShareTransfer.objects
            .filter(verification_code=code)
            .order_by('-created_at')
            .first()
        )
    return share


def _ensure_pending(share: ShareTransfer) -> None:
    if share.status == ShareStatus.VERIFIED:
        raise AlreadyVerifiedError("This code has already been redeemed")
    if share.status == ShareStatus.CANCELLED:
        raise AlreadyCancelledError("This share was cancelled by the sender")
    if share.status == ShareStatus.EXPIRED:
        raise CodeExpiredError("This code has expired")


def _mark_expired(share: ShareTransfer) -> None:
    share.status = ShareStatus.EXPIRED
    share.save(update_fields=['status', 'updated_at'])
    logger.info("Share %s expired unredeemed", share.id)


def redeem_share(*, verification_code: str, staff, now=None):
    """
    Redeem a share code at the counter and debit the sender.

    Redemption and debit are one atomic step. An overdue share is moved to
    ``expired`` (and that change is kept) before ``CodeExpiredError`` is
    raised. Redeeming the same code twice succeeds at most once.

    Args:
        verification_code: Code shown by the recipient
        staff: Staff user performing the redemption
        now: Redemption time, defaults to ``timezone.now()``

    Returns:
        CreditTransaction: the sender's ``share_redeemed`` debit

    Raises:
        InsufficientPermissionsError: If ``staff`` is not a staff member
        CodeNotFoundError: If no share uses this code
        CodeExpiredError: If the redemption window has passed
        AlreadyVerifiedError: If the code was already redeemed
        AlreadyCancelledError: If the sender cancelled the share
        InsufficientBalanceError: If the sender's balance no longer covers it
    """
    if not getattr(staff, 'is_staff', False):
        raise InsufficientPermissionsError("Only staff can redeem share codes")

    code = normalize_code(verification_code)
    if not code:
        raise CodeNotFoundError("Verification code required")

    now = now or timezone.now()

    with share_code_lock(code):
        found = _find_share_by_code(code)
        if found is None:
            logger.warning("Redeem attempt with unknown code ****%s", code[-2:])
            raise CodeNotFoundError("Invalid verification code")

        with account_locks(found.sender_account_id), transaction.atomic():
            # Account row before share row, the order every writer uses
            lock_account(found.sender_account_id, active_only=False)
            share = (
                ShareTransfer.objects
                .select_for_update()
                .select_related('sender_account__user')
                .get(id=found.id)
            )
            _ensure_pending(share)

            if not share.is_overdue(now):
                txn = commit_delta(
                    account_id=share.sender_account_id,
                    amount=-share.amount,
                    transaction_type=TransactionType.SHARE_REDEEMED,
                    description=f"Shared ${share.amount:.2f} via SMS to {share.recipient_phone}",
                    reference=f"share:{share.id}",
                    metadata={
                        'share_transfer_id': str(share.id),
                        'recipient_phone': share.recipient_phone,
                        'verified_by': str(staff.pk),
                    },
                )

                share.status = ShareStatus.VERIFIED
                share.verified_at = now
                share.verified_by = staff
                share.transaction = txn
                share.save(update_fields=[
                    'status', 'verified_at', 'verified_by', 'transaction', 'updated_at',
                ])

                logger.info(
                    "Share %s redeemed by staff %s, debited %s from account %s",
                    share.id, staff.pk, share.amount, share.sender_account_id,
                )
                send_on_commit(share_redeemed, sender=ShareTransfer, share=share, transaction=txn)
                return txn

            _mark_expired(share)

    # The expiry transition above has committed
    logger.warning("Redeem attempt on expired share %s", share.id)
    raise CodeExpiredError("This code has expired")


def cancel_share(*, share_id: UUID, user, now=None) -> ShareTransfer:
    """
    Cancel a pending share. Allowed for its sender and for staff.

    An overdue share is marked expired instead and the cancel is refused.

    Raises:
        ShareTransferNotFoundError: If the share doesn't exist
        InsufficientPermissionsError: If user is neither sender nor staff
        InvalidStateError: If the share is no longer pending
    """
    now = now or timezone.now()

    try:
        found = ShareTransfer.objects.select_related('sender_account').get(id=share_id)
    except (ShareTransfer.DoesNotExist, ValidationError, ValueError):
        raise ShareTransferNotFoundError(f"Share transfer {share_id} not found")

    if found.sender_account.user_id != user.pk and not user.is_staff:
        raise InsufficientPermissionsError("Only the sender can cancel this share")

    with account_locks(found.sender_account_id), transaction.atomic():
        lock_account(found.sender_account_id, active_only=False)
        share = ShareTransfer.objects.select_for_update().get(id=found.id)

        if share.status != ShareStatus.PENDING:
            raise InvalidStateError(f"Cannot cancel a share that is {share.status}")

        if not share.is_overdue(now):
            share.status = ShareStatus.CANCELLED
            share.cancelled_at = now
            share.save(update_fields=['status', 'cancelled_at', 'updated_at'])
            logger.info("Share %s cancelled by user %s", share.id, user.pk)
            return share

        _mark_expired(share)

    raise InvalidStateError("Cannot cancel a share that has expired")


def expire_overdue_shares(*, now=None) -> int:
    """
    Move every overdue pending share to ``expired``.

    Expiry is already enforced lazily wherever a share is used; this sweep
    only keeps the stored statuses tidy for listings and reports.

    Returns:
        Number of shares expired
    """
    now = now or timezone.now()
    expired = (
        ShareTransfer.objects
        .filter(status=ShareStatus.PENDING, expires_at__lt=now)
        .update(status=ShareStatus.EXPIRED, updated_at=now)
    )
    if expired:
        logger.info("Expired %d overdue share transfer(s)", expired)
    return expired


def list_shares_for_sender(*, account_id: UUID, now=None):
    """The sender's own shares, newest first."""
    expire_overdue_shares(now=now)
    return (
        ShareTransfer.objects
        .filter(sender_account_id=account_id)
        .select_related('verified_by')
        .order_by('-created_at')
    )


def get_share_for_sender(*, share_id: UUID, user) -> ShareTransfer:
    """
    Fetch one share owned by ``user``.

    Raises:
        ShareTransferNotFoundError: If missing or owned by someone else
    """
    try:
        return ShareTransfer.objects.select_related('sender_account').get(
            id=share_id,
            sender_account__user=user,
        )
    except (ShareTransfer.DoesNotExist, ValidationError, ValueError):
        raise ShareTransferNotFoundError(f"Share transfer {share_id} not found")

