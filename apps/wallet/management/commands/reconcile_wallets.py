"""
Management command to verify every wallet ledger.

Replays each account's transactions and compares them with the stored
balance. Exits with an error when any account is inconsistent.

Usage:
    python manage.py reconcile_wallets
    python manage.py reconcile_wallets --account <uuid>
"""

from django.core.management.base import BaseCommand, CommandError

from apps.wallet.models import CreditAccount
from apps.wallet.services import reconcile_all


class Command(BaseCommand):
    help = 'Check that every wallet balance matches its transaction history'

    def add_arguments(self, parser):
        parser.add_argument(
            '--account',
            help='Only check this account id',
        )

    def handle(self, *args, **options):
        accounts = CreditAccount.objects.all()
        if options['account']:
            accounts = accounts.filter(id=options['account'])

        total = accounts.count()
        report = reconcile_all(accounts)

        if not report:
            self.stdout.write(self.style.SUCCESS(f'All {total} wallet(s) are consistent.'))
            return

        for account_id, problems in report.items():
            self.stdout.write(self.style.ERROR(f'\nAccount {account_id}:'))
            for problem in problems:
                self.stdout.write(f'  - {problem}')

        raise CommandError(f'{len(report)} of {total} wallet(s) are inconsistent')
