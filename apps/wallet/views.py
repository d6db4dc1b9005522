from django.http import HttpResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .errors import error_response
from .models import ShareStatus, ShareTransfer
from .permissions import IsCounterStaff
from .serializers import (
    AccountLookupSerializer,
    AdjustBalanceSerializer,
    BalanceSummarySerializer,
    ConsoleShareTransferSerializer,
    CreditTransactionSerializer,
    IAPPurchaseSerializer,
    PhoneLookupSerializer,
    RedeemResultSerializer,
    RedeemShareSerializer,
    RestorePurchasesSerializer,
    RestoreResultSerializer,
    SendCreditsSerializer,
    ShareCreatedSerializer,
    ShareCreditsSerializer,
    ShareFilterSerializer,
    ShareTransferSerializer,
    TransferResultSerializer,
)
from .services import (
    WalletServiceError,
    InvalidStateError,
    adjust_balance,
    cancel_share,
    check_ledger,
    expire_overdue_shares,
    get_account,
    get_account_for_user,
    get_balance_summary,
    get_share_for_sender,
    get_transaction_history,
    initiate_share,
    list_share_transfers,
    list_shares_for_sender,
    lookup_account_by_phone,
    record_iap_purchase,
    redeem_share,
    restore_iap_purchases,
    send_credits,
)
from .services.qr_codes import ShareCodeQRGenerator


class WalletPagination(PageNumberPagination):
    """Custom pagination for wallet listings."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


@extend_schema(
    responses={200: BalanceSummarySerializer},
    description="Balance, earmarked and available credits of the current user's wallet.",
    tags=['wallet'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def wallet_summary(request):
    """Get the current user's wallet summary."""
    try:
        account = get_account_for_user(user=request.user)
        summary = get_balance_summary(account_id=account.id)
    except WalletServiceError as e:
        return error_response(e)

    return Response(BalanceSummarySerializer(summary).data)


@extend_schema(
    responses={200: CreditTransactionSerializer(many=True)},
    description="Transaction history of the current user's wallet, newest first.",
    tags=['wallet'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_history(request):
    """List the current user's transactions."""
    try:
        account = get_account_for_user(user=request.user)
        transactions = get_transaction_history(account_id=account.id).order_by('-sequence')
    except WalletServiceError as e:
        return error_response(e)

    paginator = WalletPagination()
    page = paginator.paginate_queryset(transactions, request)
    serializer = CreditTransactionSerializer(page, many=True)
    return paginator.get_paginated_response(serializer.data)


@extend_schema(
    parameters=[OpenApiParameter('phone', str, description='Phone number in any formatting')],
    responses={200: AccountLookupSerializer},
    description="Find a registered user by phone number before sending credits.",
    tags=['wallet'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def lookup_account(request):
    """Look up an account by phone number."""
    input_serializer = PhoneLookupSerializer(data=request.query_params)
    input_serializer.is_valid(raise_exception=True)

    try:
        account = lookup_account_by_phone(phone=input_serializer.validated_data['phone'])
    except WalletServiceError as e:
        return error_response(e)

    return Response(AccountLookupSerializer(account).data)


@extend_schema(
    request=SendCreditsSerializer,
    responses={201: TransferResultSerializer},
    description="Send credits to another registered user.",
    tags=['wallet'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def send_credits_view(request):
    """Send credits to another user by account id or phone."""
    serializer = SendCreditsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        account = get_account_for_user(user=request.user)
        result = send_credits(
            sender_account_id=account.id,
            recipient_account_id=data.get('recipient_id'),
            recipient_phone=data.get('recipient_phone'),
            amount=data['amount'],
            message=data.get('message', ''),
        )
    except WalletServiceError as e:
        return error_response(e)

    return Response(TransferResultSerializer(result).data, status=status.HTTP_201_CREATED)


@extend_schema(
    request=IAPPurchaseSerializer,
    responses={201: CreditTransactionSerializer},
    description="Credit a verified in-app purchase to the current user's wallet.",
    tags=['wallet'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def iap_purchase(request):
    """Record an in-app purchase."""
    serializer = IAPPurchaseSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        account = get_account_for_user(user=request.user)
        txn = record_iap_purchase(
            account_id=account.id,
            product_id=data['product_id'],
            transaction_id=data['transaction_id'],
            platform=data.get('platform', ''),
        )
    except WalletServiceError as e:
        return error_response(e)

    return Response(CreditTransactionSerializer(txn).data, status=status.HTTP_201_CREATED)


@extend_schema(
    request=RestorePurchasesSerializer,
    responses={200: RestoreResultSerializer},
    description="Credit store receipts not credited yet, e.g. after reinstalling the app.",
    tags=['wallet'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def restore_purchases(request):
    """Restore previous in-app purchases."""
    serializer = RestorePurchasesSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        account = get_account_for_user(user=request.user)
        result = restore_iap_purchases(
            account_id=account.id,
            receipts=data['receipts'],
            platform=data.get('platform', ''),
        )
    except WalletServiceError as e:
        return error_response(e)

    return Response(RestoreResultSerializer(result).data)


class ShareTransferViewSet(
mixins.ListModelMixin,
                           mixins.RetrieveModelMixin,
                           viewsets.GenericViewSet):
    """
    The current user's SMS share transfers.

    list: Shares sent by the user, newest first
    create: Share credits with a phone number
    retrieve: A single share
    cancel: Withdraw a pending share
    qr_code: PNG QR of a pending share's code
    """

    serializer_class = ShareTransferSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = WalletPagination

    def get_queryset(self):
        account = getattr(self.request.user, 'credit_account', None)
        if account is None:
            return ShareTransfer.objects.none()
        return list_shares_for_sender(account_id=account.id)

    @extend_schema(request=ShareCreditsSerializer, responses={201: ShareCreatedSerializer})
    def create(self, request, *args, **kwargs):
        """Share credits via SMS."""
        serializer = ShareCreditsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            account = get_account_for_user(user=request.user)
            share, sms_body = initiate_share(
                sender_account_id=account.id,
                recipient_phone=serializer.validated_data['recipient_phone'],
                amount=serializer.validated_data['amount'],
            )
        except WalletServiceError as e:
            return error_response(e)

        output = ShareCreatedSerializer({'share': share, 'sms_body': sms_body})
        return Response(output.data, status=status.HTTP_201_CREATED)

    @extend_schema(request=None, responses={200: ShareTransferSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """
        Cancel a pending share.

        POST /api/wallet/shares/{id}/cancel/
        """
        try:
            share = get_share_for_sender(share_id=pk, user=request.user)
            share = cancel_share(share_id=share.id, user=request.user)
        except WalletServiceError as e:
            return error_response(e)

        return Response(ShareTransferSerializer(share).data)

    @extend_schema(responses={(200, 'image/png'): OpenApiTypes.BINARY})
    @action(detail=True, methods=['get'])
    def qr_code(self, request, pk=None):
        """
        Get the QR code of a pending share.

        GET /api/wallet/shares/{id}/qr_code/
        """
        try:
            share = get_share_for_sender(share_id=pk, user=request.user)
            if share.status != ShareStatus.PENDING or share.is_overdue():
                raise InvalidStateError("QR codes are only available for pending shares")
        except WalletServiceError as e:
            return error_response(e)

        return HttpResponse(ShareCodeQRGenerator.generate_png(share), content_type='image/png')


class ConsoleShareTransferViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """
    Staff view over every share transfer.

    list: Shares filtered by ?status= and sorted by ?ordering=
    cancel: Cancel a pending share on the sender's behalf
    """

    serializer_class = ConsoleShareTransferSerializer
    permission_classes = [IsAuthenticated, IsCounterStaff]
    pagination_class = WalletPagination

    def get_queryset(self):
        filter_serializer = ShareFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        return list_share_transfers(
            status=params.get('status'),
            ordering=params.get('ordering', '-created_at'),
        )

    @extend_schema(request=None, responses={200: ConsoleShareTransferSerializer})
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """
        Cancel a pending share.

        POST /api/wallet/console/shares/{id}/cancel/
        """
        try:
            share = cancel_share(share_id=pk, user=request.user)
        except WalletServiceError as e:
            return error_response(e)

        return Response(ConsoleShareTransferSerializer(share).data)


@extend_schema(
    request=RedeemShareSerializer,
    responses={200: RedeemResultSerializer},
    description="Redeem a share code at the counter; debits the sender.",
    tags=['console'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCounterStaff])
def redeem_share_code(request):
    """Redeem a verification code."""
    serializer = RedeemShareSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        txn = redeem_share(
            verification_code=serializer.validated_data['verification_code'],
            staff=request.user,
        )
    except WalletServiceError as e:
        return error_response(e)

    share = txn.share_transfer
    return Response(RedeemResultSerializer({'share': share, 'transaction': txn}).data)


@extend_schema(
    request=None,
    description="Expire every overdue pending share now.",
    tags=['console'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCounterStaff])
def expire_shares(request):
    """Run the expiry sweep."""
    expired = expire_overdue_shares()
    return Response({'expired': expired})


@extend_schema(
    request=AdjustBalanceSerializer,
    responses={201: CreditTransactionSerializer},
    description="Add or remove credits on a wallet.",
    tags=['console'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCounterStaff])
def adjust_account_balance(request, account_id):
    """Staff balance adjustment."""
    serializer = AdjustBalanceSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        txn = adjust_balance(
            account_id=account_id,
            amount=serializer.validated_data['amount'],
            staff=request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
    except WalletServiceError as e:
        return error_response(e)

    return Response(CreditTransactionSerializer(txn).data, status=status.HTTP_201_CREATED)


@extend_schema(
    description="Full ledger of a wallet with its reconciliation result.",
    tags=['console'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCounterStaff])
def account_ledger(request, account_id):
    """Ledger and consistency check of one account."""
    try:
        account = get_account(account_id=account_id)
        transactions = get_transaction_history(account_id=account.id)
    except WalletServiceError as e:
        return error_response(e)

    problems = check_ledger(account)
    return Response({
        'account_id': account.id,
        'balance': account.balance,
        'version': account.version,
        'is_consistent': not problems,
        'problems': problems,
        'transactions': CreditTransactionSerializer(transactions, many=True).data,
    })
