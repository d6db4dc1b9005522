from rest_framework import serializers

from apps.accounts.models import User
from .models import CreditAccount, CreditTransaction, ShareStatus, ShareTransfer


# =============================================================================
# Input Serializers
# =============================================================================

class PhoneLookupSerializer(serializers.Serializer):
    """
    Validate query parameters for phone lookup.

    Query Parameters:
        phone (str): Phone number in any formatting
    """

    phone = serializers.CharField(max_length=32)


class SendCreditsSerializer(serializers.Serializer):
    """
    Validate input for a direct transfer.

    Fields:
        recipient_id (UUID): Recipient account id, or
        recipient_phone (str): Recipient phone number
        amount (decimal): Credits to send
        message (str): Optional note for the recipient
    """

    recipient_id = serializers.UUIDField(required=False)
    recipient_phone = serializers.CharField(max_length=32, required=False)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    message = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('recipient_id') and not attrs.get('recipient_phone'):
            raise serializers.ValidationError(
                'Either recipient_id or recipient_phone is required'
            )
        return attrs


class ShareCreditsSerializer(serializers.Serializer):
    """Validate input for sharing credits via SMS."""

    recipient_phone = serializers.CharField(max_length=32)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class RedeemShareSerializer(serializers.Serializer):
    """Validate input for redeeming a share code at the counter."""

    verification_code = serializers.CharField(max_length=32)


class ShareFilterSerializer(serializers.Serializer):
    """
    Validate query parameters for the staff share listing.

    Query Parameters:
        status (str): Filter by share status
        ordering (str): created_at, expires_at or verified_at, '-' for descending
    """

    status = serializers.ChoiceField(choices=ShareStatus.choices, required=False)
    ordering = serializers.ChoiceField(
        choices=[
            'created_at', '-created_at',
            'expires_at', '-expires_at',
            'verified_at', '-verified_at',
        ],
        required=False,
        default='-created_at'
    )


class IAPPurchaseSerializer(serializers.Serializer):
    """Validate a verified in-app purchase."""

    product_id = serializers.CharField(max_length=100)
    transaction_id = serializers.CharField(max_length=100)
    platform = serializers.ChoiceField(choices=['ios', 'android'], required=False, default='')


class IAPReceiptSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=100)
    transaction_id = serializers.CharField(max_length=100)


class RestorePurchasesSerializer(serializers.Serializer):
    """Validate a batch of store receipts to restore."""

    receipts = IAPReceiptSerializer(many=True, allow_empty=False)
    platform = serializers.ChoiceField(choices=['ios', 'android'], required=False, default='')


class AdjustBalanceSerializer(serializers.Serializer):
    """Validate a staff balance adjustment. Negative amounts remove credits."""

    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


# =============================================================================
# Output Serializers
# =============================================================================

class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()


class AccountLookupSerializer(serializers.ModelSerializer):
    """Public view of an account found by phone: no balance."""

    display_name = serializers.SerializerMethodField()

    class Meta:
        model = CreditAccount
        fields = ['id', 'display_name']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.user.get_display_name()


class BalanceSummarySerializer(serializers.Serializer):
    """Wallet summary for its owner."""

    account_id = serializers.UUIDField(source='account.id')
    balance = serializers.DecimalField(max_digits=12, decimal_places=2)
    earmarked = serializers.DecimalField(max_digits=12, decimal_places=2)
    available = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()


class CreditTransactionSerializer(serializers.ModelSerializer):
    """Serializer for transaction history entries."""

    counterparty_name = serializers.SerializerMethodField()

    class Meta:
        model = CreditTransaction
        fields = [
            'id',
            'transaction_type',
            'amount',
            'balance_after',
            'sequence',
            'description',
            'counterparty_account',
            'counterparty_name',
            'reference',
            'metadata',
            'created_at',
        ]
        read_only_fields = fields

    def get_counterparty_name(self, obj):
        if obj.counterparty_account_id:
            return obj.counterparty_account.user.get_display_name()
        return None


class TransferResultSerializer(serializers.Serializer):
    sender_transaction = CreditTransactionSerializer()
    recipient = AccountLookupSerializer()


class RestoredPurchaseSerializer(serializers.Serializer):
    product_id = serializers.CharField()
    transaction_id = serializers.CharField()
    credits = serializers.DecimalField(max_digits=12, decimal_places=2)


class RestoreResultSerializer(serializers.Serializer):
    credits_restored = serializers.DecimalField(max_digits=12, decimal_places=2)
    restored = RestoredPurchaseSerializer(many=True)


class ShareTransferSerializer(serializers.ModelSerializer):
    """A share as seen by its sender, code included."""

    class Meta:
        model = ShareTransfer
        fields = [
            'id',
            'recipient_phone',
            'amount',
            'verification_code',
            'status',
            'created_at',
            'expires_at',
            'verified_at',
            'cancelled_at',
        ]
        read_only_fields = fields


class ShareCreatedSerializer(serializers.Serializer):
    share = ShareTransferSerializer()
    verification_code = serializers.CharField(source='share.verification_code')
    expires_at = serializers.DateTimeField(source='share.expires_at')
    sms_body = serializers.CharField()


class ConsoleShareTransferSerializer(serializers.ModelSerializer):
    """A share as listed in the staff console, with sender and verifier names."""

    sender = UserMinimalSerializer(source='sender_account.user', read_only=True)
    verified_by = UserMinimalSerializer(read_only=True)
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = ShareTransfer
        fields = [
            'id',
            'sender',
            'sender_account',
            'recipient_phone',
            'amount',
            'verification_code',
            'status',
            'created_at',
            'expires_at',
            'is_overdue',
            'verified_at',
            'verified_by',
            'cancelled_at',
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj):
        return obj.status == ShareStatus.PENDING and obj.is_overdue()


class RedeemResultSerializer(serializers.Serializer):
    share = ConsoleShareTransferSerializer()
    transaction = CreditTransactionSerializer()
