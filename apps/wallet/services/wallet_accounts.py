"""
Wallet lifecycle: opening and deactivating credit accounts.
"""

import logging
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.wallet.models import CreditAccount, ShareStatus, ShareTransfer, TransactionType

from .balance_store import commit_delta, to_amount
from .exceptions import AccountNotFoundError
from .locks import account_locks

logger = logging.getLogger(__name__)


@transaction.atomic
def open_account(*, user, signup_bonus=None) -> CreditAccount:
    """
    Create the wallet of a newly registered user.

    A configured signup bonus is credited as an admin adjustment so the
    opening balance has a transaction behind it like every other balance.
    Opening is idempotent: an existing wallet is returned unchanged.
    """
    account, created = CreditAccount.objects.get_or_create(
        user=user,
        defaults={'currency': settings.WALLET_CURRENCY},
    )
    if not created:
        return account

    bonus = to_amount(settings.WALLET_SIGNUP_BONUS if signup_bonus is None else signup_bonus)
    if bonus > 0:
        with account_locks(account.id):
            commit_delta(
                account_id=account.id,
                amount=bonus,
                transaction_type=TransactionType.ADMIN_ADJUSTMENT,
                description="Welcome bonus",
                metadata={'reason': 'signup_bonus'},
            )
        account.refresh_from_db()

    logger.info("Opened wallet %s for user %s", account.id, user.pk)
    return account


def deactivate_account(*, account_id: UUID, now=None) -> CreditAccount:
    """
    Soft-deactivate a wallet.

    The account and its history are kept; it just stops accepting movements.
    Its pending shares are cancelled so their codes can no longer be redeemed.

    Raises:
        AccountNotFoundError: If the account doesn't exist
    """
    now = now or timezone.now()

    with account_locks(account_id), transaction.atomic():
        try:
            account = CreditAccount.objects.select_for_update().get(id=account_id)
        except CreditAccount.DoesNotExist:
            raise AccountNotFoundError(f"Account {account_id} not found")

        if not account.is_active:
            return account

        cancelled = ShareTransfer.objects.filter(
            sender_account=account,
            status=ShareStatus.PENDING,
        ).update(status=ShareStatus.CANCELLED, cancelled_at=now, updated_at=now)

        account.is_active = False
        account.deactivated_at = now
        account.save(update_fields=['is_active', 'deactivated_at', 'updated_at'])

    logger.info(
        "Deactivated wallet %s (balance %s, %d pending share(s) cancelled)",
        account.id, account.balance, cancelled,
    )
    return account
