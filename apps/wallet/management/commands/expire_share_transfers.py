"""
Management command to expire overdue share transfers.

Expiry is enforced lazily on redeem and listing, so this only tidies stored
statuses. Safe to run from cron at any interval.

Usage:
    python manage.py expire_share_transfers
    python manage.py expire_share_transfers --dry-run
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.wallet.models import ShareStatus, ShareTransfer
from apps.wallet.services import expire_overdue_shares


class Command(BaseCommand):
    help = 'Mark pending share transfers past their expiry as expired'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be expired without making changes',
        )

    def handle(self, *args, **options):
        now = timezone.now()
        overdue = ShareTransfer.objects.filter(
            status=ShareStatus.PENDING,
            expires_at__lt=now,
        ).select_related('sender_account__user')

        count = overdue.count()
        if count == 0:
            self.stdout.write(self.style.SUCCESS('No overdue share transfers.'))
            return

        self.stdout.write(f'\nFound {count} overdue share transfer(s):\n')
        for share in overdue:
            self.stdout.write(
                f'  - {share.amount} to {share.recipient_phone} | '
                f'Sender: {share.sender_account.user.email} | Expired: {share.expires_at:%Y-%m-%d %H:%M}'
            )

        if options['dry_run']:
            self.stdout.write(self.style.WARNING('\n--dry-run mode: No changes made.'))
            return

        expired = expire_overdue_shares(now=now)
        self.stdout.write(self.style.SUCCESS(f'\nExpired {expired} share transfer(s).'))
