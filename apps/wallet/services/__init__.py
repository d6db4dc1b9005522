"""
Wallet app services layer.

Services own every balance change. Views and other apps call these
functions; nothing else writes ``CreditAccount.balance``.
"""

from .exceptions import (
    WalletServiceError,
    InvalidAmountError,
    InsufficientBalanceError,
    InsufficientCreditsError,
    AccountNotFoundError,
    RecipientNotFoundError,
    SelfTransferError,
    CodeNotFoundError,
    CodeExpiredError,
    AlreadyVerifiedError,
    AlreadyCancelledError,
    InvalidStateError,
    ConcurrencyConflictError,
    DuplicatePurchaseError,
    UnknownProductError,
    ShareTransferNotFoundError,
    InvalidPhoneNumberError,
    InsufficientPermissionsError,
)

from .balance_store import (
    apply_delta,
    commit_delta,
    lock_account,
    available_balance,
    get_account,
    get_account_for_user,
    get_balance_summary,
    get_transaction_history,
    move_credits,
    pending_earmark_total,
    to_amount,
    to_positive_amount,
)

from .wallet_accounts import (
    open_account,
    deactivate_account,
)

from .direct_transfer import (
    lookup_account_by_phone,
    resolve_recipient,
    send_credits,
)

from .share_transfer import (
    initiate_share,
    redeem_share,
    cancel_share,
    expire_overdue_shares,
    list_shares_for_sender,
    get_share_for_sender,
)

from .topups import (
    record_credit_purchase,
    record_iap_purchase,
    restore_iap_purchases,
    adjust_balance,
)

from .verification_console import (
    list_share_transfers,
    list_pending_shares,
    list_all_shares,
)

from .reconciliation import (
    check_ledger,
    reconcile_all,
)


__all__ = [
    # Exceptions
    'WalletServiceError',
    'InvalidAmountError',
    'InsufficientBalanceError',
    'InsufficientCreditsError',
    'AccountNotFoundError',
    'RecipientNotFoundError',
    'SelfTransferError',
    'CodeNotFoundError',
    'CodeExpiredError',
    'AlreadyVerifiedError',
    'AlreadyCancelledError',
    'InvalidStateError',
    'ConcurrencyConflictError',
    'DuplicatePurchaseError',
    'UnknownProductError',
    'ShareTransferNotFoundError',
    'InvalidPhoneNumberError',
    'InsufficientPermissionsError',

    # Balance store
    'apply_delta',
    'commit_delta',
    'lock_account',
    'available_balance',
    'get_account',
    'get_account_for_user',
    'get_balance_summary',
    'get_transaction_history',
    'move_credits',
    'pending_earmark_total',
    'to_amount',
    'to_positive_amount',

    # Account lifecycle
    'open_account',
    'deactivate_account',

    # Direct transfers
    'lookup_account_by_phone',
    'resolve_recipient',
    'send_credits',

    # Share transfers
    'initiate_share',
    'redeem_share',
    'cancel_share',
    'expire_overdue_shares',
    'list_shares_for_sender',
    'get_share_for_sender',

    # Top-ups
    'record_credit_purchase',
    'record_iap_purchase',
    'restore_iap_purchases',
    'adjust_balance',

    # Verification console
    'list_share_transfers',
    'list_pending_shares',
    'list_all_shares',

    # Reconciliation
    'check_ledger',
    'reconcile_all',
]
