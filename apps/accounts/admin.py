from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User
from apps.wallet.services import deactivate_account


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for customers and counter staff.

    Staff flag doubles as access to the verification console. Deleting a
    user is never allowed here; use the anonymize action, which also
    deactivates the wallet.
    """

    list_display = [
        'email',
        'display_name',
        'phone_number',
        'wallet_balance',
        'is_active_badge',
        'is_staff_badge',
        'created_at',
    ]

    list_filter = [
        'is_active',
        'is_staff',
        'created_at',
    ]

    search_fields = [
        'email',
        'display_name',
        'phone_number',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'phone_number', 'password')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login'),
            'classes': ('collapse',),
        }),
        ('GDPR', {
            'fields': ('gdpr_deleted_at',),
            'classes': ('collapse',),
            'description': 'Use the anonymize action for data deletion requests.',
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'phone_number', 'password1', 'password2'),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser'),
        }),
    )

    readonly_fields = [
        'created_at',
        'last_login',
        'gdpr_deleted_at',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    def wallet_balance(self, obj):
        account = getattr(obj, 'credit_account', None)
        return account.balance if account is not None else None
    wallet_balance.short_description = 'Balance'

    def is_active_badge(self, obj):
        """Display active status as colored badge."""
        bg, label = ('#6B8E5E', 'Active') if obj.is_active else ('#B85C5C', 'Inactive')
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            bg, label
        )
    is_active_badge.short_description = 'Status'
    is_active_badge.admin_order_field = 'is_active'

    def is_staff_badge(self, obj):
        """Display counter staff as colored badge."""
        if obj.is_staff:
            return format_html(
                '<span style="background: #A47449; color: white; padding: 3px 8px; '
                'border-radius: 10px; font-size: 11px;">Staff</span>'
            )
        return format_html(
            '<span style="background: #ccc; color: #666; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">Customer</span>'
        )
    is_staff_badge.short_description = 'Role'
    is_staff_badge.admin_order_field = 'is_staff'

    actions = [
        'deactivate_users',
        'anonymize_users',
    ]

    @admin.action(description='Deactivate selected users and their wallets')
    def deactivate_users(self, request, queryset):
        """Deactivate selected users (excludes superusers)."""
        safe_queryset = queryset.filter(is_superuser=False).select_related('credit_account')
        count = 0
        for user in safe_queryset:
            account = getattr(user, 'credit_account', None)
            if account is not None:
                deactivate_account(account_id=account.id)
            user.is_active = False
            user.save(update_fields=['is_active'])
            count += 1

        skipped = queryset.count() - count
        msg = f'Deactivated {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} superuser(s).'
        self.message_user(request, msg)

    @admin.action(description='GDPR: Anonymize selected users (IRREVERSIBLE)')
    def anonymize_users(self, request, queryset):
        """
        GDPR-compliant anonymization of selected users.

        Replaces email, name and phone, deactivates the account and its
        wallet. Transactions are kept.
        """
        safe_queryset = queryset.filter(is_superuser=False, is_staff=False).select_related('credit_account')
        count = 0
        for user in safe_queryset:
            account = getattr(user, 'credit_account', None)
            if account is not None:
                deactivate_account(account_id=account.id)
            user.anonymize()
            count += 1

        skipped = queryset.count() - count
        msg = f'Anonymized {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} staff/superuser(s).'
        self.message_user(request, msg)

    def has_delete_permission(self, request, obj=None):
        return False
