"""
Management command to re-derive stale stock statuses.

Usage:
    python manage.py refresh_stock_status
    python manage.py refresh_stock_status --dry-run
    python manage.py refresh_stock_status --alerts --days 14
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from woodledger import ledger
from woodledger.classify import status_q
from woodledger.models import StockItem, StockStatus
from woodledger.services.alerts import check_alerts


class Command(BaseCommand):
    """Refresh stock statuses command."""

    help = 'Re-derives stock item statuses that went stale (e.g. expired batches)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show how many items would change without writing'
        )
        parser.add_argument(
            '--alerts',
            action='store_true',
            help='Also report low stock and expiring items'
        )
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Expiry window for --alerts (default: EXPIRING_WITHIN_DAYS)'
        )

    def handle(self, *args, **options):
        now = timezone.now()

        if options['dry_run']:
            stale = sum(
                StockItem.objects.filter(status_q(status, now)).exclude(status=status).count()
                for status in StockStatus.values
            )
            self.stdout.write(f'{stale} item(s) would be updated')
        else:
            count = ledger.refresh_statuses(now)
            self.stdout.write(
                self.style.SUCCESS(f'{count} item(s) updated')
            )

        if options['alerts']:
            for item, reason in check_alerts(options['days'], now):
                self.stdout.write(
                    self.style.WARNING(f'[{reason}] #{item.pk} {item}')
                )
