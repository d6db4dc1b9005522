"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserRegistrationError,
    PhoneNumberInUseError,
    InvalidCredentialsError,
    InactiveAccountError,
    PasswordConfirmationError,
)
from .user_registration import register_user, ensure_phone_available
from .user_authentication import authenticate_user
from .account_management import update_profile, delete_user_account

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserRegistrationError',
    'PhoneNumberInUseError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'PasswordConfirmationError',
    # Services
    'register_user',
    'ensure_phone_available',
    'authenticate_user',
    'update_profile',
    'delete_user_account',
]
