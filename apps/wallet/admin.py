from django.contrib import admin
from django.utils.html import format_html

from .models import CreditAccount, CreditTransaction, ShareStatus, ShareTransfer


class CreditTransactionInline(admin.TabularInline):
    """Read-only ledger inside an account."""
    model = CreditTransaction
    fk_name = 'account'
    extra = 0
    ordering = ['-sequence']
    fields = ['sequence', 'transaction_type', 'amount', 'balance_after', 'description', 'created_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        """Transactions are only written by the wallet services."""
        return False


@admin.register(CreditAccount)
class CreditAccountAdmin(admin.ModelAdmin):
    """
    Admin interface for credit wallets.

    Balances are read-only here; corrections go through the staff
    adjustment endpoint so they leave a transaction behind.
    """

    list_display = ['user', 'balance', 'currency', 'version', 'is_active', 'created_at']
    list_filter = ['is_active', 'currency', 'created_at']
    search_fields = ['user__email', 'user__display_name', 'user__phone_number']
    readonly_fields = [
        'id', 'user', 'balance', 'currency', 'version',
        'is_active', 'deactivated_at', 'created_at', 'updated_at',
    ]
    inlines = [CreditTransactionInline]
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CreditTransaction)
class CreditTransactionAdmin(admin.ModelAdmin):
    """Append-only transaction log."""

    list_display = [
        'account',
        'sequence',
        'transaction_type',
        'amount_display',
        'balance_after',
        'description',
        'created_at',
    ]
    list_filter = ['transaction_type', 'created_at']
    search_fields = ['account__user__email', 'description', 'reference']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def amount_display(self, obj):
        color = '#6B8E5E' if obj.amount > 0 else '#B85C5C'
        return format_html('<span style="color: {};">{}</span>', color, f'{obj.amount:+.2f}')
    amount_display.short_description = 'Amount'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(ShareTransfer)
class ShareTransferAdmin(admin.ModelAdmin):
    """Admin interface for SMS share transfers."""

    list_display = [
        'sender_account',
        'recipient_phone',
        'amount',
        'masked_code',
        'status_badge',
        'created_at',
        'expires_at',
        'verified_by',
    ]
    list_filter = ['status', 'created_at']
    search_fields = ['recipient_phone', 'sender_account__user__email', 'verification_code']
    readonly_fields = [
        'id', 'sender_account', 'recipient_phone', 'amount', 'verification_code',
        'status', 'created_at', 'expires_at', 'verified_at', 'verified_by',
        'cancelled_at', 'transaction', 'updated_at',
    ]
    ordering = ['-created_at']

    fieldsets = (
        ('Share', {
            'fields': ('id', 'sender_account', 'recipient_phone', 'amount', 'verification_code')
        }),
        ('Status', {
            'fields': ('status', 'created_at', 'expires_at', 'cancelled_at')
        }),
        ('Redemption', {
            'fields': ('verified_at', 'verified_by', 'transaction')
        }),
    )

    def status_badge(self, obj):
        """Display share status as colored badge."""
        colors = {
            ShareStatus.PENDING: ('#E5C49A', '#2C1810'),
            ShareStatus.VERIFIED: ('#6B8E5E', 'white'),
            ShareStatus.EXPIRED: ('#A47449', 'white'),
            ShareStatus.CANCELLED: ('#B85C5C', 'white'),
        }
        bg, fg = colors.get(obj.status, ('#ccc', '#666'))
        return format_html(
            '<span style="background: {}; color: {}; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, fg, obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    def has_add_permission(self, request):
        return False
