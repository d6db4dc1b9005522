# Generated manually for the credit wallet

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CreditAccount',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[MinValueValidator(Decimal('0.00'))])),
                ('currency', models.CharField(default='AUD', max_length=3)),
                ('version', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('deactivated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name='credit_account', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'credit_accounts',
                'indexes': [models.Index(fields=['is_active'], name='credit_acct_active_idx')],
                'constraints': [
                    models.CheckConstraint(check=models.Q(balance__gte=0), name='credit_account_balance_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CreditTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('transaction_type', models.CharField(choices=[('purchase', 'Credit purchase'), ('order_debit', 'Order payment'), ('admin_adjustment', 'Admin adjustment'), ('transfer_out', 'Transfer sent'), ('transfer_in', 'Transfer received'), ('share_redeemed', 'Shared via SMS')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('balance_after', models.DecimalField(decimal_places=2, max_digits=12)),
                ('sequence', models.PositiveIntegerField()),
                ('description', models.CharField(max_length=255)),
                ('reference', models.CharField(blank=True, db_index=True, max_length=100)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='wallet.creditaccount')),
                ('counterparty_account', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='+', to='wallet.creditaccount')),
                ('related_transaction', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='mirror', to='wallet.credittransaction')),
            ],
            options={
                'db_table': 'credit_transactions',
                'ordering': ['account', 'sequence'],
                'indexes': [
                    models.Index(fields=['account', 'created_at'], name='credit_txn_account_idx'),
                    models.Index(fields=['transaction_type', 'created_at'], name='credit_txn_type_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('account', 'sequence'), name='credit_transaction_unique_sequence'),
                    models.UniqueConstraint(condition=models.Q(transaction_type='purchase'), fields=('reference',), name='credit_transaction_unique_purchase_reference'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ShareTransfer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('recipient_phone', models.CharField(max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('verification_code', models.CharField(db_index=True, max_length=16)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified'), ('expired', 'Expired'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField()),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('sender_account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='share_transfers', to='wallet.creditaccount')),
                ('transaction', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='share_transfer', to='wallet.credittransaction')),
                ('verified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='verified_share_transfers', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'share_transfers',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['sender_account', 'status'], name='share_sender_status_idx'),
                    models.Index(fields=['status', 'created_at'], name='share_status_created_idx'),
                    models.Index(fields=['status', 'expires_at'], name='share_status_expires_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(status='pending'), fields=('verification_code',), name='share_transfer_unique_pending_code'),
                ],
            },
        ),
    ]
