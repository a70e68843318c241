"""
Stock alerts — low stock and expiry warnings.

Usage:
    from woodledger.services.alerts import check_alerts

    # Run periodically (cron, celery beat) or after stock changes
    alerts = check_alerts()
    # Returns list of (StockItem, reason) tuples
"""

import logging

from django.utils import timezone

from woodledger.services.queries import StockQueries

logger = logging.getLogger('woodledger')

LOW_STOCK = 'low_stock'
EXPIRING = 'expiring'


def check_alerts(days: int | None = None, now=None) -> list[tuple]:
    """
    Collect items that need attention.

    An item is reported when its available quantity is at or below its
    minimum threshold, or when it expires within `days`.

    Args:
        days: Expiry window (None = EXPIRING_WITHIN_DAYS setting)

    Returns:
        List of (item, reason) tuples, reason in {'low_stock', 'expiring'}.
    """
    now = now or timezone.now()
    alerts = []

    for item in StockQueries.low_stock(now):
        alerts.append((item, LOW_STOCK))
        logger.warning(
            "ledger.alert.low_stock",
            extra={
                "item_id": item.pk,
                "wood_type": item.wood_type,
                "size": item.size,
                "available": str(item.available),
                "minimum_threshold": str(item.minimum_threshold),
            },
        )

    for item in StockQueries.expiring_within(days, now):
        alerts.append((item, EXPIRING))
        logger.warning(
            "ledger.alert.expiring",
            extra={
                "item_id": item.pk,
                "wood_type": item.wood_type,
                "expiry_date": item.expiry_date.isoformat(),
                "available": str(item.available),
            },
        )

    return alerts
