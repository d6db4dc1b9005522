from django.contrib import admin
from django.utils.html import format_html

from .models import Order, OrderStatus


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin interface for orders.

    Staff move orders through preparation here. Totals and the debit are
    fixed at placement.
    """

    list_display = ['short_id', 'account', 'total', 'status_badge', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'account__user__email', 'account__user__display_name']
    readonly_fields = ['id', 'account', 'items', 'total', 'transaction', 'created_at', 'updated_at']
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    def status_badge(self, obj):
        """Display order status as colored badge."""
        colors = {
            OrderStatus.PROCESSING: ('#E5C49A', '#2C1810'),
            OrderStatus.PREPARING: ('#A47449', 'white'),
            OrderStatus.READY: ('#6B8E5E', 'white'),
            OrderStatus.COMPLETED: ('#ccc', '#666'),
            OrderStatus.CANCELLED: ('#B85C5C', 'white'),
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
