from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal
import uuid


class TransactionType(models.TextChoices):
    PURCHASE = 'purchase', 'Credit purchase'
    ORDER_DEBIT = 'order_debit', 'Order payment'
    ADMIN_ADJUSTMENT = 'admin_adjustment', 'Admin adjustment'
    TRANSFER_OUT = 'transfer_out', 'Transfer sent'
    TRANSFER_IN = 'transfer_in', 'Transfer received'
    SHARE_REDEEMED = 'share_redeemed', 'Shared via SMS'


class ShareStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    VERIFIED = 'verified', 'Verified'
    EXPIRED = 'expired', 'Expired'
    CANCELLED = 'cancelled', 'Cancelled'


class CreditAccount(models.Model):
    """
    A user's credit wallet. The balance here is the single source of truth.

    ``version`` increases by one with every committed balance change and is
    copied onto the transaction it produced as ``sequence``; writers only
    update the row when the version they read is still current.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='credit_account'
    )

    balance = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    currency = models.CharField(max_length=3, default='AUD')
    version = models.PositiveIntegerField(default=0)

    # Soft deactivation, accounts with history are never deleted
    is_active = models.BooleanField(default=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'credit_accounts'
        constraints = [
            models.CheckConstraint(
                check=models.Q(balance__gte=0),
                name='credit_account_balance_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['is_active'], name='credit_acct_active_idx'),
        ]

    def __str__(self):
        return f"{self.user.get_display_name()}: {self.balance} {self.currency}"


class CreditTransaction(models.Model):
    """Append-only record of one balance change."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    account = models.ForeignKey(
        CreditAccount,
        on_delete=models.PROTECT,
        related_name='transactions'
    )
    transaction_type = models.CharField(max_length=20, choices=TransactionType.choices)

    # Signed: positive = credit, negative = debit
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    balance_after = models.DecimalField(max_digits=12, decimal_places=2)

    # Position in the account's history (equals the account version after commit)
    sequence = models.PositiveIntegerField()

    description = models.CharField(max_length=255)

    counterparty_account = models.ForeignKey(
        CreditAccount,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='+'
    )
    # The mirror transaction of a transfer (sender <-> recipient)
    related_transaction = models.OneToOneField(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='mirror'
    )

    # External reference (payment processor / IAP transaction id, share code)
    reference = models.CharField(max_length=100, blank=True, db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        db_table = 'credit_transactions'
        constraints = [
            models.UniqueConstraint(
                fields=['account', 'sequence'],
                name='credit_transaction_unique_sequence',
            ),
            models.UniqueConstraint(
                fields=['reference'],
                condition=models.Q(transaction_type='purchase'),
                name='credit_transaction_unique_purchase_reference',
            ),
        ]
        indexes = [
            models.Index(fields=['account', 'created_at'], name='credit_txn_account_idx'),
            models.Index(fields=['transaction_type', 'created_at'], name='credit_txn_type_idx'),
        ]
        ordering = ['account', 'sequence']

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.amount} (balance {self.balance_after})"


class ShareTransfer(models.Model):
    """
    Credits shared with a phone number that has no app account.

    Nothing is debited while the share is pending; the amount only counts
    against the sender's available balance. Staff redeem the verification
    code at the counter, which is when the sender is actually debited.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    sender_account = models.ForeignKey(
        CreditAccount,
        on_delete=models.PROTECT,
        related_name='share_transfers'
    )
    recipient_phone = models.CharField(max_length=20)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    verification_code = models.CharField(max_length=16, db_index=True)
    status = models.CharField(
        max_length=20,
        choices=ShareStatus.choices,
        default=ShareStatus.PENDING
    )

    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()

    verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='verified_share_transfers'
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)

    # Debit produced by redemption
    transaction = models.OneToOneField(
        CreditTransaction,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='share_transfer'
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'share_transfers'
        constraints = [
            # A code identifies at most one live share
            models.UniqueConstraint(
                fields=['verification_code'],
                condition=models.Q(status='pending'),
                name='share_transfer_unique_pending_code',
            ),
        ]
        indexes = [
            models.Index(fields=['sender_account', 'status'], name='share_sender_status_idx'),
            models.Index(fields=['status', 'created_at'], name='share_status_created_idx'),
            models.Index(fields=['status', 'expires_at'], name='share_status_expires_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.amount} to {self.recipient_phone} ({self.status})"

    def is_overdue(self, now=None):
        """True once the redemption window has closed."""
        now = now or timezone.now()
        return now > self.expires_at

    @property
    def masked_code(self):
        return f"****{self.verification_code[-2:]}"
