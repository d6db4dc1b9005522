"""
Domain-specific exceptions for the wallet services.

These exceptions represent business rule violations and are caught in
views and converted to HTTP responses. Each carries a stable ``code``
that is returned to API clients alongside the message.
"""


class WalletServiceError(Exception):
    """Base exception for all wallet service errors."""
    code = 'wallet_error'


class InvalidAmountError(WalletServiceError):
    """Raised when an amount is zero, negative or not a valid money value."""
    code = 'invalid_amount'


class InsufficientBalanceError(WalletServiceError):
    """Raised when a debit would exceed the available balance."""
    code = 'insufficient_balance'


class InsufficientCreditsError(InsufficientBalanceError):
    """Raised when an order total exceeds the available balance."""
    code = 'insufficient_credits'


class AccountNotFoundError(WalletServiceError):
    """Raised when an account does not exist or is deactivated."""
    code = 'account_not_found'


class RecipientNotFoundError(AccountNotFoundError):
    """Raised when a transfer recipient cannot be resolved."""
    code = 'recipient_not_found'


class SelfTransferError(WalletServiceError):
    """Raised when a sender tries to send credits to their own account."""
    code = 'self_transfer'


class CodeNotFoundError(WalletServiceError):
    """Raised when no share transfer matches a verification code."""
    code = 'code_not_found'


class CodeExpiredError(WalletServiceError):
    """Raised when a share transfer's redemption window has passed."""
    code = 'code_expired'


class AlreadyVerifiedError(WalletServiceError):
    """Raised when a share transfer has already been redeemed."""
    code = 'already_verified'


class AlreadyCancelledError(WalletServiceError):
    """Raised when a share transfer was cancelled by its sender."""
    code = 'already_cancelled'


class InvalidStateError(WalletServiceError):
    """Raised when an operation is not valid for a share's current status."""
    code = 'invalid_state'


class ConcurrencyConflictError(WalletServiceError):
    """Raised when optimistic balance updates keep losing races."""
    code = 'concurrency_conflict'


class DuplicatePurchaseError(WalletServiceError):
    """Raised when a payment reference has already been credited."""
    code = 'duplicate_purchase'


class UnknownProductError(WalletServiceError):
    """Raised when an in-app purchase product id is not recognised."""
    code = 'unknown_product'


class ShareTransferNotFoundError(WalletServiceError):
    """Raised when a share transfer id does not exist."""
    code = 'share_not_found'


class InvalidPhoneNumberError(WalletServiceError):
    """Raised when a recipient phone number has no digits to send to."""
    code = 'invalid_phone'


class InsufficientPermissionsError(WalletServiceError):
    """Raised when a user lacks the role required for an action."""
    code = 'insufficient_permissions'
