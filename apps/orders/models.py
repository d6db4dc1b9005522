from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
import uuid

from apps.wallet.models import CreditAccount, CreditTransaction


class OrderStatus(models.TextChoices):
    PROCESSING = 'processing', 'Processing'
    PREPARING = 'preparing', 'Preparing'
    READY = 'ready', 'Ready'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class Order(models.Model):
    """
    A coffee order paid with wallet credits.

    ``items`` is a list of ``{name, quantity, price, size?, options?}``
    as sent by the app. The order and its debit are created together or
    not at all.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    account = models.ForeignKey(
        CreditAccount,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    items = models.JSONField(default=list)
    total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PROCESSING
    )

    # The order_debit that paid for it
    transaction = models.OneToOneField(
        CreditTransaction,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='order'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        indexes = [
            models.Index(fields=['account', 'created_at'], name='order_account_created_idx'),
            models.Index(fields=['status'], name='order_status_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"Order #{self.short_id} ({self.total})"

    @property
    def short_id(self):
        return str(self.id)[:8].upper()
