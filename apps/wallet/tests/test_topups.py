"""Purchase, in-app purchase and staff adjustment tests."""

from decimal import Decimal

import pytest

from apps.wallet.models import TransactionType
from apps.wallet.services import (
    DuplicatePurchaseError,
    InsufficientBalanceError,
    InsufficientPermissionsError,
    InvalidAmountError,
    UnknownProductError,
    adjust_balance,
    open_account,
    record_credit_purchase,
    record_iap_purchase,
    restore_iap_purchases,
)
from apps.wallet.services.topups import credits_for_product


@pytest.mark.django_db
class TestCreditPurchase:
    """Tests for record_credit_purchase()."""

    def test_purchase_credits_wallet(self, sender_account):
        txn = record_credit_purchase(
            account_id=sender_account.id,
            amount=Decimal('25.00'),
            reference='pi_123',
        )

        sender_account.refresh_from_db()
        assert sender_account.balance == Decimal('25.00')
        assert txn.transaction_type == TransactionType.PURCHASE
        assert txn.reference == 'pi_123'
        assert txn.description == 'Added $25.00 credits'

    def test_same_reference_credited_once(self, sender_account):
        record_credit_purchase(
            account_id=sender_account.id,
            amount=Decimal('25.00'),
            reference='pi_123',
        )

        with pytest.raises(DuplicatePurchaseError):
            record_credit_purchase(
                account_id=sender_account.id,
                amount=Decimal('25.00'),
                reference='pi_123',
            )

        sender_account.refresh_from_db()
        assert sender_account.balance == Decimal('25.00')

    def test_reference_required(self, sender_account):
        with pytest.raises(InvalidAmountError):
            record_credit_purchase(
                account_id=sender_account.id,
                amount=Decimal('25.00'),
                reference='  ',
            )


@pytest.mark.django_db
class TestInAppPurchase:
    """Tests for credits_for_product() and record_iap_purchase()."""

    @pytest.mark.parametrize('product_id,expected', [
        ('credits_10', Decimal('10.00')),
        ('com.beanstalker.app.credits_10', Decimal('10.00')),
        ('com.beanstalker.app.credits_100', Decimal('100.00')),
        ('com.beanstalker.app.membership', Decimal('69.00')),
    ])
    def test_product_credits(self, product_id, expected):
        assert credits_for_product(product_id) == expected

    def test_unknown_product(self):
        with pytest.raises(UnknownProductError):
            credits_for_product('com.beanstalker.app.tip_jar')

    def test_iap_purchase(self, sender_account):
        txn = record_iap_purchase(
            account_id=sender_account.id,
            product_id='com.beanstalker.app.credits_50',
            transaction_id='1000000123',
            platform='ios',
        )

        sender_account.refresh_from_db()
        assert sender_account.balance == Decimal('50.00')
        assert txn.description == 'In-app purchase: $50.00 credits'
        assert txn.metadata == {
            'product_id': 'com.beanstalker.app.credits_50',
            'platform': 'ios',
        }

    def test_store_transaction_credited_once(self, sender_account, recipient_account):
        """A replayed receipt is refused even on another account."""
        record_iap_purchase(
            account_id=sender_account.id,
            product_id='credits_25',
            transaction_id='1000000999',
        )

        with pytest.raises(DuplicatePurchaseError):
            record_iap_purchase(
                account_id=recipient_account.id,
                product_id='credits_25',
                transaction_id='1000000999',
            )

        recipient_account.refresh_from_db()
        assert recipient_account.balance == Decimal('0.00')


@pytest.mark.django_db
class TestRestorePurchases:
    """Tests for restore_iap_purchases()."""

    def test_restores_uncredited_receipts(self, sender_account):
        result = restore_iap_purchases(
            account_id=sender_account.id,
            receipts=[
                {'product_id': 'com.beanstalker.app.credits_10', 'transaction_id': '2000000001'},
                {'product_id': 'com.beanstalker.app.membership', 'transaction_id': '2000000002'},
            ],
            platform='ios',
        )

        sender_account.refresh_from_db()
        assert result['credits_restored'] == Decimal('79.00')
        assert [r['transaction_id'] for r in result['restored']] == ['2000000001', '2000000002']
        assert sender_account.balance == Decimal('79.00')

        txn = sender_account.transactions.get(reference='2000000002')
        assert txn.transaction_type == TransactionType.PURCHASE
        assert txn.description == 'Restored: com.beanstalker.app.membership'
        assert txn.metadata['restored'] is True

    def test_already_credited_receipts_skipped(self, sender_account):
        record_iap_purchase(
            account_id=sender_account.id,
            product_id='credits_25',
            transaction_id='2000000010',
        )

        result = restore_iap_purchases(
            account_id=sender_account.id,
            receipts=[
                {'product_id': 'credits_25', 'transaction_id': '2000000010'},
                {'product_id': 'credits_50', 'transaction_id': '2000000011'},
                {'product_id': 'credits_50', 'transaction_id': '2000000011'},
            ],
        )

        sender_account.refresh_from_db()
        assert result['credits_restored'] == Decimal('50.00')
        assert len(result['restored']) == 1
        assert sender_account.balance == Decimal('75.00')

    def test_unknown_products_skipped(self, sender_account):
        result = restore_iap_purchases(
            account_id=sender_account.id,
            receipts=[
                {'product_id': 'com.beanstalker.app.tip_jar', 'transaction_id': '2000000020'},
                {'product_id': 'credits_10', 'transaction_id': ''},
            ],
        )

        assert result == {'credits_restored': Decimal('0.00'), 'restored': []}
        assert sender_account.transactions.count() == 0


@pytest.mark.django_db
class TestAdjustBalance:
    """Tests for adjust_balance()."""

    def test_staff_adds_credits(self, sender_account, staff_user):
        txn = adjust_balance(
            account_id=sender_account.id,
            amount='7.50',
            staff=staff_user,
            reason='Spilled latte',
        )

        assert txn.transaction_type == TransactionType.ADMIN_ADJUSTMENT
        assert txn.amount == Decimal('7.50')
        assert txn.description == 'Spilled latte'
        assert txn.metadata == {'adjusted_by': str(staff_user.pk), 'reason': 'Spilled latte'}

    def test_default_description(self, funded_account, staff_user):
        txn = adjust_balance(account_id=funded_account.id, amount='-5.00', staff=staff_user)

        assert txn.description == 'Credits removed by staff'
        assert txn.balance_after == Decimal('45.00')

    def test_removal_cannot_go_negative(self, funded_account, staff_user):
        with pytest.raises(InsufficientBalanceError):
            adjust_balance(account_id=funded_account.id, amount='-50.01', staff=staff_user)

    def test_customer_cannot_adjust(self, sender_account, recipient):
        with pytest.raises(InsufficientPermissionsError):
            adjust_balance(account_id=sender_account.id, amount='100.00', staff=recipient)

    def test_zero_rejected(self, sender_account, staff_user):
        with pytest.raises(InvalidAmountError):
            adjust_balance(account_id=sender_account.id, amount='0', staff=staff_user)


@pytest.mark.django_db
class TestOpenAccount:
    """Tests for open_account()."""

    def test_open_is_idempotent(self, sender, sender_account):
        again = open_account(user=sender, signup_bonus=Decimal('5.00'))

        assert again.id == sender_account.id
        assert again.balance == Decimal('0.00')

    def test_signup_bonus_recorded(self, staff_user):
        account = open_account(user=staff_user, signup_bonus=Decimal('3.00'))

        assert account.balance == Decimal('3.00')
        assert account.version == 1
        txn = account.transactions.get()
        assert txn.description == 'Welcome bonus'
        assert txn.metadata == {'reason': 'signup_bonus'}
