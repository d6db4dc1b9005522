import pytest
from decimal import Decimal
from uuid import uuid4
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.accounts.services import register_user
from apps.wallet.services import record_credit_purchase


def client_for(user):
    """Return an API client authenticated as ``user`` with a JWT."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def fund():
    """Credit a wallet through a purchase with a fresh reference."""
    def _fund(account, amount):
        txn = record_credit_purchase(
            account_id=account.id,
            amount=Decimal(str(amount)),
            reference=f'test-{uuid4()}',
        )
        account.refresh_from_db()
        return txn
    return _fund


@pytest.fixture
def sender(db):
    """Registered customer with a wallet."""
    return register_user(
        email='alice@example.com',
        password='TestPass123!',
        display_name='Alice',
        phone_number='0400 111 222',
    )


@pytest.fixture
def recipient(db):
    """Second registered customer with a wallet."""
    return register_user(
        email='bob@example.com',
        password='TestPass123!',
        display_name='Bob',
        phone_number='0400 333 444',
    )


@pytest.fixture
def sender_account(sender):
    return sender.credit_account


@pytest.fixture
def recipient_account(recipient):
    return recipient.credit_account


@pytest.fixture
def funded_account(sender_account, fund):
    """Sender wallet holding 50.00 credits."""
    fund(sender_account, '50.00')
    return sender_account


@pytest.fixture
def staff_user(db):
    """Counter staff member (no wallet needed)."""
    return User.objects.create_user(
        email='staff@example.com',
        password='TestPass123!',
        display_name='Counter Staff',
        is_staff=True,
    )


@pytest.fixture
def sender_client(sender):
    return client_for(sender)


@pytest.fixture
def recipient_client(recipient):
    return client_for(recipient)


@pytest.fixture
def staff_client(staff_user):
    return client_for(staff_user)
