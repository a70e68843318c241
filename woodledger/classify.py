"""
Stock status derivation — isolated, testable, reusable.

The status of a stock item is a pure function of its available quantity,
minimum threshold, expiry date, the manual Reserved override and the
current time. Precedence:

    1. Expired      expiry_date <= now
    2. Reserved     manual override set
    3. OutOfStock   available <= 0
    4. LowStock     available <= minimum_threshold
    5. Available    otherwise

Examples:
    - available=100, threshold=10              -> Available
    - available=5, threshold=10                -> LowStock
    - available=0, threshold=10                -> OutOfStock
    - available=100, expiry_date=yesterday     -> Expired
"""

from datetime import datetime
from decimal import Decimal

from django.db.models import F, Q
from django.utils import timezone

from woodledger.models.enums import StockStatus


def derive_status(available: Decimal, minimum_threshold: Decimal,
                  expiry_date: datetime | None = None, now: datetime | None = None,
                  reserved: bool = False) -> StockStatus:
    """
    Derive a status from raw values.

    Args:
        available: Quantity in the available pool
        minimum_threshold: Low-stock threshold
        expiry_date: When the batch expires (None = never)
        now: Reference time (None = timezone.now())
        reserved: Manual Reserved override

    Returns:
        StockStatus
    """
    now = now or timezone.now()

    if expiry_date is not None and expiry_date <= now:
        return StockStatus.EXPIRED
    if reserved:
        return StockStatus.RESERVED
    if available <= 0:
        return StockStatus.OUT_OF_STOCK
    if available <= minimum_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.AVAILABLE


def classify(item, now: datetime | None = None) -> StockStatus:
    """Status of a StockItem at `now`. No side effects."""
    return derive_status(
        available=item.available,
        minimum_threshold=item.minimum_threshold,
        expiry_date=item.expiry_date,
        now=now,
        reserved=item.reserved,
    )


def status_q(status: str, now: datetime | None = None) -> Q:
    """
    Queryset-level version of classify().

    Used for reads so that an item whose expiry passed since its last write
    is still reported as Expired.
    """
    now = now or timezone.now()
    expired = Q(expiry_date__isnull=False, expiry_date__lte=now)
    not_expired = Q(expiry_date__isnull=True) | Q(expiry_date__gt=now)
    live = not_expired & Q(reserved=False)

    if status == StockStatus.EXPIRED:
        return expired
    if status == StockStatus.RESERVED:
        return not_expired & Q(reserved=True)
    if status == StockStatus.OUT_OF_STOCK:
        return live & Q(available__lte=0)
    if status == StockStatus.LOW_STOCK:
        return live & Q(available__gt=0) & Q(available__lte=F('minimum_threshold'))
    if status == StockStatus.AVAILABLE:
        return live & Q(available__gt=0) & Q(available__gt=F('minimum_threshold'))
    raise ValueError(f"Unknown stock status: {status!r}")
