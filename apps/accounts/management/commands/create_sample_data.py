"""
Management command to create sample data for trying the API.

Usage:
    python manage.py create_sample_data

This creates:
- 4 users (staff, alice, bob, charlie), each with a wallet
- Credit purchases funding the wallets
- A direct transfer between alice and bob
- A pending SMS share from alice
- An order paid by bob

Running it again does nothing once the sample users exist.
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from decimal import Decimal

from apps.accounts.models import User
from apps.accounts.services import register_user
from apps.orders.services import place_order
from apps.wallet.services import (
    initiate_share,
    record_credit_purchase,
    send_credits,
)


SAMPLE_USERS = [
    ('alice@example.com', 'Alice Coffee', '0400 111 222', Decimal('50.00')),
    ('bob@example.com', 'Bob Barista', '0400 333 444', Decimal('25.00')),
    ('charlie@example.com', 'Charlie Caffeine', '0400 555 666', Decimal('10.00')),
]


class Command(BaseCommand):
    help = 'Create sample wallet data for testing the API'

    @transaction.atomic
    def handle(self, *args, **options):
        if User.objects.filter(email='alice@example.com').exists():
            self.stdout.write(self.style.WARNING('Sample data already exists. Nothing to do.'))
            return

        self.stdout.write('Creating sample data...')

        staff = self.create_staff()
        users = self.create_customers()
        self.create_activity(users)

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write(f'  {staff.email} / staff123 (counter staff)')
        for email, _, _, _ in SAMPLE_USERS:
            self.stdout.write(f'  {email} / password123')

    def create_staff(self):
        """Create a counter staff member with admin access."""
        self.stdout.write('  Creating staff...')
        staff = register_user(
            email='staff@example.com',
            password='staff123',
            display_name='Counter Staff',
        )
        staff.is_staff = True
        staff.is_superuser = True
        staff.save(update_fields=['is_staff', 'is_superuser'])
        return staff

    def create_customers(self):
        """Create customers and fund their wallets."""
        self.stdout.write('  Creating customers...')
        users = {}
        for email, name, phone, credits in SAMPLE_USERS:
            user = register_user(
                email=email,
                password='password123',
                display_name=name,
                phone_number=phone,
            )
            record_credit_purchase(
                account_id=user.credit_account.id,
                amount=credits,
                reference=f'sample-{email}',
            )
            users[email.split('@')[0]] = user
        return users

    def create_activity(self, users):
        """A transfer, a pending share and an order."""
        self.stdout.write('  Creating wallet activity...')
        alice = users['alice'].credit_account
        bob = users['bob'].credit_account

        send_credits(
            sender_account_id=alice.id,
            recipient_account_id=bob.id,
            amount=Decimal('5.00'),
            message='Coffee on me',
        )

        share, _ = initiate_share(
            sender_account_id=alice.id,
            recipient_phone='0400 999 000',
            amount=Decimal('10.00'),
        )
        self.stdout.write(f'    Pending share code: {share.verification_code}')

        place_order(
            account_id=bob.id,
            items=[
                {'name': 'Flat White', 'quantity': 1, 'price': '4.50', 'size': 'medium'},
                {'name': 'Banana Bread', 'quantity': 1, 'price': '5.00'},
            ],
            total=Decimal('9.50'),
        )
