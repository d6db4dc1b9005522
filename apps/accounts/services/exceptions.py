"""Domain-specific exceptions for accounts services."""


class AccountsServiceError(Exception):
    """Base exception for accounts services."""
    pass


class UserRegistrationError(AccountsServiceError):
    """Raised when user registration fails."""
    pass


class PhoneNumberInUseError(UserRegistrationError):
    """Raised when a phone number already belongs to another active user."""
    pass


class InvalidCredentialsError(AccountsServiceError):
    """Raised when authentication credentials are invalid."""
    pass


class InactiveAccountError(AccountsServiceError):
    """Raised when account is deactivated."""
    pass


class PasswordConfirmationError(AccountsServiceError):
    """Raised when password confirmation fails."""
    pass
