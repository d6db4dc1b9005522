from rest_framework import serializers

from .models import Order


# =============================================================================
# Input Serializers
# =============================================================================

class OrderItemSerializer(serializers.Serializer):
    """One order line as sent by the app."""

    name = serializers.CharField(max_length=100)
    quantity = serializers.IntegerField(min_value=1, default=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True)
    options = serializers.JSONField(required=False)


class OrderCreateSerializer(serializers.Serializer):
    """
    Validate input for placing an order.

    Fields:
        items (list): Order lines
        total (decimal): Total charged to the wallet
    """

    items = OrderItemSerializer(many=True, allow_empty=False)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


# =============================================================================
# Output Serializers
# =============================================================================

class OrderSerializer(serializers.ModelSerializer):
    """Serializer for orders."""

    short_id = serializers.CharField(read_only=True)
    balance_after = serializers.DecimalField(
        source='transaction.balance_after',
        max_digits=12,
        decimal_places=2,
        read_only=True,
        default=None
    )

    class Meta:
        model = Order
        fields = [
            'id',
            'short_id',
            'items',
            'total',
            'status',
            'transaction',
            'balance_after',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
