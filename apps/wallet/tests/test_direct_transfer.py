"""Direct transfer service tests."""

from decimal import Decimal
from uuid import uuid4

import pytest

from apps.wallet.models import TransactionType
from apps.wallet.services import (
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    RecipientNotFoundError,
    SelfTransferError,
    deactivate_account,
    initiate_share,
    lookup_account_by_phone,
    send_credits,
)
from apps.wallet.signals import credits_transferred


@pytest.mark.django_db
class TestLookupByPhone:
    """Tests for lookup_account_by_phone()."""

    def test_formatting_is_ignored(self, sender_account):
        account = lookup_account_by_phone(phone='(0400) 111-222')

        assert account.id == sender_account.id

    def test_unknown_number(self, sender_account):
        with pytest.raises(AccountNotFoundError):
            lookup_account_by_phone(phone='0400 999 999')

    def test_deactivated_wallet_not_found(self, sender_account):
        deactivate_account(account_id=sender_account.id)

        with pytest.raises(AccountNotFoundError):
            lookup_account_by_phone(phone='0400111222')

    def test_blank_number(self, db):
        with pytest.raises(AccountNotFoundError):
            lookup_account_by_phone(phone='  ')


@pytest.mark.django_db
class TestSendCredits:
    """Tests for send_credits()."""

    def test_send_by_account_id(self, funded_account, recipient_account):
        """Sender is debited and recipient credited by the same amount."""
        result = send_credits(
            sender_account_id=funded_account.id,
            recipient_account_id=recipient_account.id,
            amount=Decimal('15.00'),
            message='Lunch',
        )

        funded_account.refresh_from_db()
        recipient_account.refresh_from_db()
        assert funded_account.balance == Decimal('35.00')
        assert recipient_account.balance == Decimal('15.00')

        debit = result['sender_transaction']
        credit = result['recipient_transaction']
        assert debit.transaction_type == TransactionType.TRANSFER_OUT
        assert credit.transaction_type == TransactionType.TRANSFER_IN
        assert debit.description == 'Sent to Bob'
        assert credit.description == 'Received from Alice'
        assert credit.related_transaction == debit
        assert debit.metadata == {'message': 'Lunch'}
        assert result['recipient'].id == recipient_account.id

    def test_send_by_phone(self, funded_account, recipient_account):
        send_credits(
            sender_account_id=funded_account.id,
            recipient_phone='0400-333-444',
            amount='5',
        )

        recipient_account.refresh_from_db()
        assert recipient_account.balance == Decimal('5.00')

    def test_insufficient_balance(self, funded_account, recipient_account):
        """A rejected transfer moves nothing."""
        with pytest.raises(InsufficientBalanceError):
            send_credits(
                sender_account_id=funded_account.id,
                recipient_account_id=recipient_account.id,
                amount=Decimal('60.00'),
            )

        funded_account.refresh_from_db()
        recipient_account.refresh_from_db()
        assert funded_account.balance == Decimal('50.00')
        assert recipient_account.balance == Decimal('0.00')
        assert recipient_account.transactions.count() == 0

    def test_earmarked_credits_cannot_be_sent(self, funded_account, recipient_account):
        """Credits promised to a pending share are not available."""
        initiate_share(
            sender_account_id=funded_account.id,
            recipient_phone='0499 000 111',
            amount=Decimal('40.00'),
        )

        with pytest.raises(InsufficientBalanceError):
            send_credits(
                sender_account_id=funded_account.id,
                recipient_account_id=recipient_account.id,
                amount=Decimal('20.00'),
            )

        send_credits(
            sender_account_id=funded_account.id,
            recipient_account_id=recipient_account.id,
            amount=Decimal('10.00'),
        )
        funded_account.refresh_from_db()
        assert funded_account.balance == Decimal('40.00')

    def test_self_transfer_rejected(self, funded_account):
        with pytest.raises(SelfTransferError):
            send_credits(
                sender_account_id=funded_account.id,
                recipient_phone='0400 111 222',
                amount=Decimal('1.00'),
            )

    @pytest.mark.parametrize('amount', ['0', '-5.00', 'lots'])
    def test_invalid_amount(self, funded_account, recipient_account, amount):
        with pytest.raises(InvalidAmountError):
            send_credits(
                sender_account_id=funded_account.id,
                recipient_account_id=recipient_account.id,
                amount=amount,
            )

    def test_unknown_recipient(self, funded_account):
        with pytest.raises(RecipientNotFoundError):
            send_credits(
                sender_account_id=funded_account.id,
                recipient_account_id=uuid4(),
                amount=Decimal('1.00'),
            )

    def test_missing_recipient(self, funded_account):
        with pytest.raises(RecipientNotFoundError):
            send_credits(sender_account_id=funded_account.id, amount=Decimal('1.00'))

    def test_signal_sent_after_commit(
        self, funded_account, recipient_account, django_capture_on_commit_callbacks
    ):
        received = []

        def receiver(sender, debit, credit, **kwargs):
            received.append((debit, credit))

        credits_transferred.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True) as callbacks:
                result = send_credits(
                    sender_account_id=funded_account.id,
                    recipient_account_id=recipient_account.id,
                    amount=Decimal('2.00'),
                )
                assert received == []
        finally:
            credits_transferred.disconnect(receiver)

        assert len(callbacks) == 1
        assert received == [(result['sender_transaction'], result['recipient_transaction'])]
