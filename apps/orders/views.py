from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.wallet.errors import error_response
from apps.wallet.services import WalletServiceError, get_account_for_user

from .serializers import OrderCreateSerializer, OrderSerializer
from .services import OrdersServiceError, list_orders_for_user, place_order


class OrderPagination(PageNumberPagination):
    """Custom pagination for orders."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class OrderViewSet(mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    The current user's orders.

    list: Orders, newest first
    create: Place an order paid with wallet credits
    retrieve: A single order
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = OrderPagination

    def get_queryset(self):
        return list_orders_for_user(user=self.request.user)

    @extend_schema(request=OrderCreateSerializer, responses={201: OrderSerializer})
    def create(self, request, *args, **kwargs):
        """Place an order."""
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            account = get_account_for_user(user=request.user)
            order = place_order(
                account_id=account.id,
                items=serializer.validated_data['items'],
                total=serializer.validated_data['total'],
            )
        except (WalletServiceError, OrdersServiceError) as e:
            return error_response(e)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
