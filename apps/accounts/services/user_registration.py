"""User registration service."""

import logging

from django.db import IntegrityError, transaction
from django.contrib.auth import get_user_model

from apps.accounts.models import normalize_phone_number
from apps.wallet.services import open_account

from .exceptions import PhoneNumberInUseError, UserRegistrationError

User = get_user_model()

logger = logging.getLogger(__name__)


def ensure_phone_available(phone_number: str, *, exclude_user_id=None) -> str:
    """
    Normalise a phone number and check no other active user has it.

    Phone numbers must be unambiguous: "send credits to this number" has to
    resolve to exactly one wallet.

    Raises:
        PhoneNumberInUseError: If another active user registered the number
    """
    digits = normalize_phone_number(phone_number)
    if not digits:
        return ''

    taken = User.objects.filter(phone_number=digits, is_active=True)
    if exclude_user_id is not None:
        taken = taken.exclude(id=exclude_user_id)
    if taken.exists():
        raise PhoneNumberInUseError("This phone number is already registered")

    return digits


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    display_name: str = "",
    phone_number: str = ""
) -> User:
    """
    Register a new user together with their credit wallet.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        display_name: Optional display name
        phone_number: Optional phone number, any formatting

    Returns:
        Created User instance; ``user.credit_account`` is already open

    Raises:
        PhoneNumberInUseError: If the phone number belongs to another user
        UserRegistrationError: If registration fails
    """
    phone = ensure_phone_available(phone_number)

    if User.objects.filter(email__iexact=email).exists():
        raise UserRegistrationError("A user with this email already exists")

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            display_name=display_name,
            phone_number=phone
        )
    except IntegrityError as e:
        raise UserRegistrationError(f"Registration failed: {str(e)}")

    open_account(user=user)

    logger.info("Registered user %s", user.id)
    return user
