import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.services import register_user
from apps.wallet.services import record_credit_purchase


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def customer(db):
    """Registered customer whose wallet holds 10.00 credits."""
    user = register_user(
        email='customer@example.com',
        password='TestPass123!',
        display_name='Customer',
        phone_number='0400 777 888',
    )
    record_credit_purchase(
        account_id=user.credit_account.id,
        amount=Decimal('10.00'),
        reference='order-tests-topup',
    )
    return user


@pytest.fixture
def account(customer):
    account = customer.credit_account
    account.refresh_from_db()
    return account


@pytest.fixture
def other_customer(db):
    return register_user(
        email='other@example.com',
        password='TestPass123!',
        display_name='Other',
    )


@pytest.fixture
def authenticated_client(customer):
    """Return an API client authenticated as the customer."""
    client = APIClient()
    refresh = RefreshToken.for_user(customer)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def order_items():
    return [
        {'name': 'Flat White', 'quantity': 1, 'price': '4.50', 'size': 'large'},
        {'name': 'Croissant', 'quantity': 1, 'price': '3.00'},
    ]
