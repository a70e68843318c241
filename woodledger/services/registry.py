"""
Stock registry — intake, edits, removal and pool transfers on stock items.

adjust() is the only code path that changes a StockItem's pools. It locks
the row, applies the transfer, re-derives the status and writes pools and
status in a single UPDATE, together with an audit Movement.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import ProtectedError
from django.utils import timezone

from woodledger.classify import classify, status_q
from woodledger.conf import woodledger_settings
from woodledger.exceptions import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from woodledger.models.enums import MoveKind, StockStatus, UnitOfMeasure, WoodQuality
from woodledger.models.movement import Movement
from woodledger.models.stock_item import StockItem
from woodledger.validators import choice, non_negative, quantity as clean_quantity, required_text, to_decimal

logger = logging.getLogger('woodledger')

ZERO = Decimal('0')

POOL_FIELDS = ['available', 'allocated', 'distributed', 'status', 'updated_at']


def _item_pk(item) -> int:
    return item.pk if isinstance(item, StockItem) else item


def lock_item(item) -> StockItem:
    """Fetch a StockItem with select_for_update(). Call inside transaction.atomic()."""
    pk = _item_pk(item)
    try:
        return StockItem.objects.select_for_update().get(pk=pk)
    except (StockItem.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('ITEM_NOT_FOUND', item_id=pk) from None


def apply_transfer(item: StockItem, kind: str, quantity: Decimal) -> None:
    """
    Apply a pool transfer in memory.

    Raises:
        InsufficientStockError: allocate would drive available negative
    """
    if kind == MoveKind.ADD:
        item.available += quantity
    elif kind == MoveKind.ALLOCATE:
        if item.available < quantity:
            raise InsufficientStockError(
                available=item.available,
                requested=quantity,
                item_id=item.pk,
            )
        item.available -= quantity
        item.allocated += quantity
    elif kind == MoveKind.DISTRIBUTE:
        item.allocated = max(ZERO, item.allocated - quantity)
        item.distributed += quantity
    elif kind == MoveKind.RETURN:
        item.available += quantity
        item.distributed = max(ZERO, item.distributed - quantity)
    elif kind == MoveKind.RELEASE:
        item.allocated = max(ZERO, item.allocated - quantity)
        item.available += quantity
    else:
        raise ValidationError('INVALID_CHOICE', field='kind', value=kind)


def _text(max_length):
    def clean(value, field):
        text = '' if value is None else str(value).strip()
        if len(text) > max_length:
            raise ValidationError(
                'INVALID_INPUT', message=f"{field} must be at most {max_length} characters",
                field=field,
            )
        return text
    return clean


def _required_date(value, field):
    if value is None:
        raise ValidationError('MISSING_FIELD', field=field)
    return value


# Descriptive fields update_item() accepts, with their cleaners
EDITABLE_FIELDS = {
    'wood_type': lambda v, f: required_text(v, f, min_length=2, max_length=100),
    'size': lambda v, f: required_text(v, f, max_length=50),
    'species': _text(100),
    'source': _text(200),
    'location': _text(200),
    'notes': lambda v, f: '' if v is None else str(v),
    'unit': lambda v, f: choice(v, UnitOfMeasure, f),
    'quality': lambda v, f: choice(v, WoodQuality, f),
    'price_per_unit': lambda v, f: non_negative(v, f, allow_none=True),
    'minimum_threshold': non_negative,
    'arrival_date': _required_date,
    'expiry_date': lambda v, f: v,
}


class StockRegistry:
    """Stock item write methods."""

    @classmethod
    def intake(cls, wood_type, size, quantity, *, unit=UnitOfMeasure.PIECES,
               quality=WoodQuality.STANDARD, species='', source='', location='',
               price_per_unit=None, arrival_date=None, expiry_date=None,
               minimum_threshold=None, notes='', user=None) -> StockItem:
        """
        Register a new stock batch.

        available = quantity, allocated = distributed = 0.

        Raises:
            ValidationError: negative quantity/price/threshold or more than
                2 decimal places, missing wood type or size, unknown unit
                or quality
        """
        wood_type = required_text(wood_type, 'wood_type', min_length=2, max_length=100)
        size = required_text(size, 'size', max_length=50)
        quantity = clean_quantity(quantity, allow_zero=True)
        price_per_unit = non_negative(price_per_unit, 'price_per_unit', allow_none=True)
        if minimum_threshold is None:
            minimum_threshold = woodledger_settings.DEFAULT_MINIMUM_THRESHOLD
        minimum_threshold = non_negative(minimum_threshold, 'minimum_threshold')
        choice(unit, UnitOfMeasure, 'unit')
        choice(quality, WoodQuality, 'quality')

        now = timezone.now()
        item = StockItem(
            wood_type=wood_type,
            size=size,
            unit=unit,
            quality=quality,
            species=species or '',
            source=source or '',
            location=location or '',
            available=quantity,
            price_per_unit=price_per_unit,
            arrival_date=arrival_date or now,
            expiry_date=expiry_date,
            minimum_threshold=minimum_threshold,
            notes=notes or '',
            added_by=user,
        )
        item.status = classify(item, now)

        with transaction.atomic():
            item.save()
            if quantity > 0:
                Movement.objects.create(
                    item=item,
                    kind=MoveKind.ADD,
                    quantity=quantity,
                    available_after=item.available,
                    allocated_after=item.allocated,
                    distributed_after=item.distributed,
                    reason='Intake',
                    user=user,
                )

        logger.info(
            "ledger.stock.intake",
            extra={
                "item_id": item.pk,
                "wood_type": wood_type,
                "size": size,
                "qty": str(quantity),
                "status": item.status,
            },
        )
        return item

    @classmethod
    def adjust(cls, item, delta, kind, *, distribution=None, user=None,
               reason='', now=None) -> StockItem:
        """
        Apply one pool transfer.

        kind is one of MoveKind; delta is used as |delta|.

        Raises:
            ValidationError: delta is zero, not a number or finer than
                2 decimal places, unknown kind
            NotFoundError: item does not exist
            InsufficientStockError: allocate exceeds available

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on StockItem
            - Pools and status are saved in one UPDATE
        """
        quantity = clean_quantity(abs(to_decimal(delta, 'delta')), 'delta')
        choice(kind, MoveKind, 'kind')

        with transaction.atomic():
            locked = lock_item(item)
            apply_transfer(locked, kind, quantity)
            locked.status = classify(locked, now)
            locked.save(update_fields=POOL_FIELDS)

            Movement.objects.create(
                item=locked,
                distribution=distribution,
                kind=kind,
                quantity=quantity,
                available_after=locked.available,
                allocated_after=locked.allocated,
                distributed_after=locked.distributed,
                reason=reason or kind,
                user=user,
            )

        logger.info(
            "ledger.stock.adjusted",
            extra={
                "item_id": locked.pk,
                "kind": kind,
                "qty": str(quantity),
                "available": str(locked.available),
                "allocated": str(locked.allocated),
                "distributed": str(locked.distributed),
                "status": locked.status,
            },
        )
        return locked

    @classmethod
    def set_reserved(cls, item, reserved: bool, user=None) -> StockItem:
        """Set or clear the Reserved override and re-derive the status."""
        with transaction.atomic():
            locked = lock_item(item)
            locked.reserved = reserved
            locked.status = classify(locked)
            locked.save(update_fields=['reserved', 'status', 'updated_at'])

        logger.info(
            "ledger.stock.reserved" if reserved else "ledger.stock.unreserved",
            extra={"item_id": locked.pk, "status": locked.status, "user": getattr(user, 'pk', None)},
        )
        return locked

    @classmethod
    def update_item(cls, item, user=None, **fields) -> StockItem:
        """
        Edit the descriptive fields of a stock item and re-derive its status.

        Pools and the reserved flag are not editable here. Distributions
        keep the wood type, size and unit they were created with.

        Raises:
            ValidationError: unknown or non-editable field, invalid value
            NotFoundError: item does not exist
        """
        cleaned = {}
        for field, value in fields.items():
            if field not in EDITABLE_FIELDS:
                raise ValidationError(
                    'INVALID_INPUT', message=f"{field} cannot be edited", field=field
                )
            cleaned[field] = EDITABLE_FIELDS[field](value, field)

        with transaction.atomic():
            locked = lock_item(item)
            for field, value in cleaned.items():
                setattr(locked, field, value)
            locked.status = classify(locked)
            locked.save(update_fields=[*cleaned, 'status', 'updated_at'])

        logger.info(
            "ledger.stock.updated",
            extra={"item_id": locked.pk, "fields": sorted(cleaned), "status": locked.status,
                   "user": getattr(user, 'pk', None)},
        )
        return locked

    @classmethod
    def remove_item(cls, item, user=None) -> None:
        """
        Delete a stock item no distribution refers to.

        The item's movements are deleted with it.

        Raises:
            NotFoundError: item does not exist
            ConflictError: distributions still refer to the item
        """
        with transaction.atomic():
            locked = lock_item(item)
            pk = locked.pk
            if locked.distributions.exists():
                raise ConflictError('ITEM_IN_USE', item_id=pk)
            # QuerySet.delete() skips Movement.delete()
            moves, _ = locked.movements.all().delete()
            try:
                locked.delete()
            except ProtectedError:
                raise ConflictError('ITEM_IN_USE', item_id=pk) from None

        logger.warning(
            "ledger.stock.removed",
            extra={"item_id": pk, "movements": moves, "user": getattr(user, 'pk', None)},
        )

    @classmethod
    def refresh_statuses(cls, now=None) -> int:
        """
        Re-derive and persist stale statuses.

        Status depends on time (expiry), so a stored value can go stale
        without any write. Returns the number of items corrected.

        Concurrency:
            - Each batch runs under its own transaction.atomic()
            - Uses select_for_update() with SKIP LOCKED
        """
        now = now or timezone.now()
        batch_size = woodledger_settings.STATUS_REFRESH_BATCH_SIZE
        total = 0

        for status in StockStatus.values:
            stale = StockItem.objects.filter(status_q(status, now)).exclude(status=status)
            while True:
                with transaction.atomic():
                    batch_ids = list(
                        stale.select_for_update(skip_locked=True)
                        .values_list('pk', flat=True)[:batch_size]
                    )
                    if not batch_ids:
                        break
                    StockItem.objects.filter(pk__in=batch_ids).update(status=status, updated_at=now)
                    total += len(batch_ids)

        if total:
            logger.warning(
                "ledger.stock.status_refreshed",
                extra={"corrected": total},
            )
        return total
