"""
Order debit service tests.

Tests cover:
- An order and its debit are created together or not at all
- Orders check the available balance, earmarks included
- Concurrent orders cannot overspend a wallet
"""

import threading
from decimal import Decimal

import pytest
from django.db import connection

from apps.accounts.services import register_user
from apps.orders.models import Order, OrderStatus
from apps.orders.services import (
    InvalidOrderError,
    OrderNotFoundError,
    get_order_for_user,
    list_orders_for_user,
    place_order,
)
from apps.orders.signals import order_debited
from apps.wallet.models import CreditAccount, TransactionType
from apps.wallet.services import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InsufficientCreditsError,
    InvalidAmountError,
    check_ledger,
    deactivate_account,
    initiate_share,
    record_credit_purchase,
)


@pytest.mark.django_db
class TestPlaceOrder:
    """Tests for place_order()."""

    def test_order_debits_wallet(self, account, order_items):
        order = place_order(account_id=account.id, items=order_items, total=Decimal('7.50'))

        account.refresh_from_db()
        assert account.balance == Decimal('2.50')
        assert order.status == OrderStatus.PROCESSING
        assert order.total == Decimal('7.50')

        txn = order.transaction
        assert txn.transaction_type == TransactionType.ORDER_DEBIT
        assert txn.amount == Decimal('-7.50')
        assert txn.balance_after == Decimal('2.50')
        assert txn.description == f'Order #{order.short_id}'
        assert txn.reference == f'order:{order.id}'
        assert txn.metadata == {'order_id': str(order.id), 'item_count': 2}
        assert check_ledger(account) == []

    def test_items_are_stored_clean(self, account):
        order = place_order(
            account_id=account.id,
            items=[{'name': 'Latte', 'quantity': '2', 'price': 4, 'options': ['oat milk']}],
            total='8.00',
        )

        assert order.items == [
            {'name': 'Latte', 'quantity': 2, 'price': '4.00', 'options': ['oat milk']},
        ]

    def test_insufficient_credits_creates_nothing(self, account, order_items):
        """A 15.00 order against 10.00 leaves no order and no debit."""
        with pytest.raises(InsufficientCreditsError):
            place_order(account_id=account.id, items=order_items, total=Decimal('15.00'))

        account.refresh_from_db()
        assert account.balance == Decimal('10.00')
        assert Order.objects.count() == 0
        assert account.transactions.count() == 1

    def test_insufficient_credits_is_an_insufficient_balance(self):
        assert issubclass(InsufficientCreditsError, InsufficientBalanceError)

    def test_earmarked_credits_cannot_pay(self, account, order_items):
        initiate_share(
            sender_account_id=account.id,
            recipient_phone='0499 000 111',
            amount=Decimal('5.00'),
        )

        with pytest.raises(InsufficientCreditsError):
            place_order(account_id=account.id, items=order_items, total=Decimal('7.50'))

    def test_order_for_whole_balance(self, account, order_items):
        place_order(account_id=account.id, items=order_items, total=Decimal('10.00'))

        account.refresh_from_db()
        assert account.balance == Decimal('0.00')

    @pytest.mark.parametrize('total', ['0', '-1.00', 'free'])
    def test_invalid_total(self, account, order_items, total):
        with pytest.raises(InvalidAmountError):
            place_order(account_id=account.id, items=order_items, total=total)

    @pytest.mark.parametrize('items', [
        [],
        [{'quantity': 1, 'price': '1.00'}],
        [{'name': 'Mocha', 'quantity': 0, 'price': '1.00'}],
        [{'name': 'Mocha', 'quantity': 'two', 'price': '1.00'}],
        [{'name': 'Mocha', 'quantity': 1, 'price': '-1.00'}],
        [{'name': 'Mocha', 'quantity': 1, 'price': 'cheap'}],
    ])
    def test_invalid_items(self, account, items):
        with pytest.raises(InvalidOrderError):
            place_order(account_id=account.id, items=items, total=Decimal('1.00'))

        assert Order.objects.count() == 0

    def test_deactivated_wallet(self, account, order_items):
        deactivate_account(account_id=account.id)

        with pytest.raises(AccountNotFoundError):
            place_order(account_id=account.id, items=order_items, total=Decimal('1.00'))

    def test_signal_sent_after_commit(self, account, order_items, django_capture_on_commit_callbacks):
        received = []

        def receiver(sender, order, transaction, **kwargs):
            received.append((order.id, transaction.id))

        order_debited.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                order = place_order(account_id=account.id, items=order_items, total=Decimal('7.50'))
                assert received == []
        finally:
            order_debited.disconnect(receiver)

        assert received == [(order.id, order.transaction.id)]


@pytest.mark.django_db
class TestOrderQueries:
    """Tests for get_order_for_user() and list_orders_for_user()."""

    def test_get_own_order(self, customer, account, order_items):
        order = place_order(account_id=account.id, items=order_items, total=Decimal('1.00'))

        assert get_order_for_user(order_id=order.id, user=customer) == order

    def test_cannot_get_other_users_order(self, account, other_customer, order_items):
        order = place_order(account_id=account.id, items=order_items, total=Decimal('1.00'))

        with pytest.raises(OrderNotFoundError):
            get_order_for_user(order_id=order.id, user=other_customer)

    def test_invalid_order_id(self, customer):
        with pytest.raises(OrderNotFoundError):
            get_order_for_user(order_id='not-a-uuid', user=customer)

    def test_list_only_own_orders(self, customer, account, other_customer, order_items):
        place_order(account_id=account.id, items=order_items, total=Decimal('1.00'))
        place_order(account_id=account.id, items=order_items, total=Decimal('2.00'))

        assert list_orders_for_user(user=customer).count() == 2
        assert list_orders_for_user(user=other_customer).count() == 0


class TestConcurrentOrders:
    """Two orders racing for the same credits."""

    @pytest.mark.django_db(transaction=True)
    def test_only_one_of_two_orders_succeeds(self):
        """10.00 in the wallet, two 7.00 orders at once: exactly one is paid."""
        user = register_user(email='racer@example.com', password='TestPass123!')
        account = user.credit_account
        record_credit_purchase(account_id=account.id, amount=Decimal('10.00'), reference='race-topup')
        items = [{'name': 'Cold Brew', 'quantity': 1, 'price': '7.00'}]

        placed = []
        rejected = []

        def order():
            try:
                placed.append(place_order(account_id=account.id, items=items, total=Decimal('7.00')))
            except InsufficientCreditsError as e:
                rejected.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=order) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        account = CreditAccount.objects.get(id=account.id)
        assert len(placed) == 1
        assert len(rejected) == 1
        assert account.balance == Decimal('3.00')
        assert Order.objects.count() == 1
        assert check_ledger(account) == []
