from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from apps.orders.models import Order
from apps.orders.services import place_order


@pytest.mark.django_db
class TestPlaceOrderAPI:
    """Tests for POST /api/orders/"""

    def test_place_order(self, authenticated_client, account, order_items):
        url = reverse('orders:order-list')
        data = {'items': order_items, 'total': '7.50'}
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['total'] == '7.50'
        assert response.data['status'] == 'processing'
        assert response.data['balance_after'] == '2.50'
        assert len(response.data['short_id']) == 8
        assert len(response.data['items']) == 2

    def test_insufficient_credits(self, authenticated_client, account, order_items):
        url = reverse('orders:order-list')
        data = {'items': order_items, 'total': '15.00'}
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        assert response.data['code'] == 'insufficient_credits'
        assert Order.objects.count() == 0

    def test_empty_order_rejected(self, authenticated_client, account):
        url = reverse('orders:order-list')
        data = {'items': [], 'total': '1.00'}
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_zero_total_rejected(self, authenticated_client, account, order_items):
        url = reverse('orders:order-list')
        data = {'items': order_items, 'total': '0.00'}
        response = authenticated_client.post(url, data, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'invalid_amount'

    def test_unauthenticated(self, api_client, order_items):
        url = reverse('orders:order-list')
        response = api_client.post(url, {'items': order_items, 'total': '1.00'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestOrderListAPI:
    """Tests for GET /api/orders/ and /api/orders/{id}/"""

    def test_list_own_orders(self, authenticated_client, account, other_customer, order_items):
        place_order(account_id=account.id, items=order_items, total=Decimal('3.00'))
        url = reverse('orders:order-list')
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['total'] == '3.00'

    def test_retrieve_order(self, authenticated_client, account, order_items):
        order = place_order(account_id=account.id, items=order_items, total=Decimal('3.00'))
        url = reverse('orders:order-detail', args=[order.id])
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == str(order.id)
        assert response.data['transaction'] == order.transaction.id

    def test_other_users_order_not_found(self, api_client, other_customer, account, order_items):
        from rest_framework_simplejwt.tokens import RefreshToken

        order = place_order(account_id=account.id, items=order_items, total=Decimal('3.00'))
        refresh = RefreshToken.for_user(other_customer)
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')

        url = reverse('orders:order-detail', args=[order.id])
        response = api_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
