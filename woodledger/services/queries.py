"""
Ledger queries — read-only operations.

All methods are classmethods and use no locking. Status filters are
derived at query time (see woodledger.classify.status_q), so stored
statuses that went stale with the clock are still reported correctly.
"""

from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from woodledger.classify import status_q
from woodledger.conf import woodledger_settings
from woodledger.exceptions import ValidationError
from woodledger.models.distribution import Distribution
from woodledger.models.enums import DistributionStatus, StockStatus
from woodledger.models.stock_item import StockItem
from woodledger.validators import choice, quantity as clean_quantity

ZERO = Decimal('0')


class StockQueries:
    """Read-only stock item query methods."""

    @classmethod
    def by_status(cls, status, now=None):
        """Items whose status at `now` equals `status`."""
        choice(status, StockStatus, 'status')
        return StockItem.objects.with_status(status, now)

    @classmethod
    def by_type(cls, wood_type):
        return StockItem.objects.of_type(wood_type)

    @classmethod
    def expiring_within(cls, days: int | None = None, now=None):
        """
        Items expiring in [now, now + days] and not already expired.

        Args:
            days: Window in days (None = EXPIRING_WITHIN_DAYS setting)
        """
        if days is None:
            days = woodledger_settings.EXPIRING_WITHIN_DAYS
        if days < 0:
            raise ValidationError('INVALID_INPUT', message=f"days cannot be negative, got {days}", field='days')
        return StockItem.objects.expiring_within(days, now)

    @classmethod
    def fifo(cls, wood_type, size, quantity=None, now=None):
        """
        Batches matching wood type and size that can serve a request, oldest arrival first.

        Only Available and LowStock items qualify (not expired, not
        reserved, something on hand). With `quantity`, only batches whose
        available pool covers it.
        """
        qs = StockItem.objects.fifo(wood_type, size).filter(
            status_q(StockStatus.AVAILABLE, now) | status_q(StockStatus.LOW_STOCK, now)
        )
        if quantity is not None:
            qs = qs.filter(available__gte=clean_quantity(quantity))
        return qs

    @classmethod
    def find_batch(cls, wood_type, size, quantity=None, now=None) -> StockItem | None:
        """Oldest batch able to serve the request, or None."""
        return cls.fifo(wood_type, size, quantity, now).first()

    @classmethod
    def low_stock(cls, now=None):
        """Live items at or below their threshold (includes out of stock), emptiest first."""
        now = now or timezone.now()
        return StockItem.objects.filter(
            status_q(StockStatus.LOW_STOCK, now) | status_q(StockStatus.OUT_OF_STOCK, now)
        ).order_by('available', 'arrival_date')

    @classmethod
    def inventory_summary(cls, now=None) -> dict:
        """
        Totals across all items plus item counts per derived status.

        Returns:
            {
                'total': {'items', 'total_available', 'total_allocated', 'total_distributed'},
                'by_status': {status: count},
            }
        """
        now = now or timezone.now()
        totals = StockItem.objects.aggregate(
            items=Count('pk'),
            total_available=Coalesce(Sum('available'), ZERO),
            total_allocated=Coalesce(Sum('allocated'), ZERO),
            total_distributed=Coalesce(Sum('distributed'), ZERO),
            **{
                f"status_{status}": Count('pk', filter=status_q(status, now))
                for status in StockStatus.values
            },
        )
        by_status = {status: totals.pop(f"status_{status}") for status in StockStatus.values}
        return {'total': totals, 'by_status': by_status}

    @classmethod
    def wood_type_stats(cls) -> list[dict]:
        """Per wood type: item_count, total_available, total_distributed."""
        return list(
            StockItem.objects.order_by()
            .values('wood_type')
            .annotate(
                item_count=Count('pk'),
                total_available=Coalesce(Sum('available'), ZERO),
                total_distributed=Coalesce(Sum('distributed'), ZERO),
            )
            .order_by('wood_type')
        )


class DistributionQueries:
    """Read-only distribution query methods."""

    @classmethod
    def summary(cls, start=None, end=None) -> dict:
        """
        Counts, quantities and values grouped by request status.

        Args:
            start, end: Optional window on delivered_at (inclusive). When
                either is given, only delivered-at-some-point requests
                inside the window are counted.

        Returns:
            {status: {'count': int, 'quantity': Decimal, 'value': Decimal}}
        """
        if start is not None and end is not None and start > end:
            raise ValidationError('INVALID_INPUT', message='start must not be after end', field='start')

        qs = Distribution.objects.all()
        if start is not None or end is not None:
            qs = qs.delivered_between(start, end)

        rows = (
            qs.order_by()
            .values('status')
            .annotate(
                count=Count('pk'),
                total_quantity=Coalesce(Sum('quantity'), ZERO),
                total_value=Coalesce(Sum('total_price'), ZERO),
            )
            .order_by('status')
        )
        return {
            row['status']: {
                'count': row['count'],
                'quantity': row['total_quantity'],
                'value': row['total_value'],
            }
            for row in rows
        }

    @classmethod
    def member_history(cls, member_id, limit: int = 50):
        return Distribution.objects.for_member(member_id).select_related('item', 'approved_by')[:limit]

    @classmethod
    def pending(cls):
        """Pending requests, oldest first, with their item."""
        return Distribution.objects.pending().select_related('item')

    @classmethod
    def open_for_item(cls, item):
        """Pending and approved requests against one item."""
        pk = getattr(item, 'pk', item)
        return Distribution.objects.filter(
            status__in=[DistributionStatus.PENDING, DistributionStatus.APPROVED],
            item_id=pk,
        )
