"""Account management service."""

import logging
from uuid import UUID

from django.db import transaction
from django.contrib.auth import get_user_model

from apps.wallet.models import CreditAccount
from apps.wallet.services import deactivate_account

from .exceptions import PasswordConfirmationError
from .user_registration import ensure_phone_available

User = get_user_model()

logger = logging.getLogger(__name__)


@transaction.atomic
def update_profile(*, user, display_name=None, phone_number=None) -> User:
    """
    Update the editable profile fields of a user.

    Raises:
        PhoneNumberInUseError: If the new phone number belongs to another user
    """
    fields = []

    if display_name is not None:
        user.display_name = display_name
        fields.append('display_name')

    if phone_number is not None:
        user.phone_number = ensure_phone_available(phone_number, exclude_user_id=user.id)
        fields.append('phone_number')

    if fields:
        user.save(update_fields=fields)

    return user


@transaction.atomic
def delete_user_account(*, user_id: UUID, password: str) -> None:
    """
    GDPR-compliant account deletion (anonymization).

    The wallet is soft-deactivated, never deleted: its transactions stay
    for reconciliation and disputes.

    Args:
        user_id: User's ID
        password: User's password for confirmation

    Raises:
        PasswordConfirmationError: If password is incorrect
    """
    user = (
        User.objects
        .select_for_update()
        .get(id=user_id)
    )

    if not user.check_password(password):
        raise PasswordConfirmationError("Invalid password")

    account = CreditAccount.objects.filter(user=user).first()
    if account is not None:
        deactivate_account(account_id=account.id)

    user.anonymize()
    logger.info("Deleted user %s", user_id)
