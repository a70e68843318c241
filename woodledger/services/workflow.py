"""
Distribution workflow — request lifecycle (open, approve, deliver, cancel, return).

TRANSITIONS is the single source of truth for which status changes are
legal, which capability each one needs and which pool transfer it applies
to the referenced StockItem. A transition and its pool transfer commit in
the same transaction or not at all.
"""

import logging
import secrets
from dataclasses import dataclass

from django.db import IntegrityError, transaction
from django.utils import timezone

from woodledger.conf import woodledger_settings
from woodledger.exceptions import (
    ConflictError,
    InsufficientStockError,
    InvalidTransitionError,
    NotAuthorizedError,
    NotFoundError,
)
from woodledger.models.distribution import Distribution
from woodledger.models.enums import (
    DistributionStatus,
    MoveKind,
    PaymentMethod,
    PaymentStatus,
    Purpose,
)
from woodledger.services.registry import StockRegistry
from woodledger.validators import choice, non_negative, positive_int, quantity as clean_quantity

logger = logging.getLogger('woodledger')

RECEIPT_ATTEMPTS = 10


@dataclass(frozen=True)
class Transition:
    capability: str
    move: str | None = None


TRANSITIONS: dict[tuple[str | None, str], Transition] = {
    (None, DistributionStatus.PENDING): Transition('can_write'),
    (DistributionStatus.PENDING, DistributionStatus.APPROVED): Transition('can_approve', MoveKind.ALLOCATE),
    (DistributionStatus.APPROVED, DistributionStatus.DELIVERED): Transition('can_deliver', MoveKind.DISTRIBUTE),
    (DistributionStatus.PENDING, DistributionStatus.CANCELLED): Transition('can_write'),
    (DistributionStatus.APPROVED, DistributionStatus.CANCELLED): Transition('can_write', MoveKind.RELEASE),
    (DistributionStatus.DELIVERED, DistributionStatus.RETURNED): Transition('can_write', MoveKind.RETURN),
}

# status reached -> (timestamp field, actor field)
STAMPS = {
    DistributionStatus.APPROVED: ('approved_at', 'approved_by'),
    DistributionStatus.DELIVERED: ('delivered_at', 'delivered_by'),
    DistributionStatus.CANCELLED: ('cancelled_at', None),
    DistributionStatus.RETURNED: ('returned_at', None),
}

NOTE_FIELDS = {
    DistributionStatus.APPROVED: 'approval_notes',
    DistributionStatus.DELIVERED: 'distribution_notes',
    DistributionStatus.CANCELLED: 'approval_notes',
    DistributionStatus.RETURNED: 'distribution_notes',
}


def allowed_targets(current: str | None) -> list[str]:
    """Statuses reachable from `current`."""
    return [target for (source, target) in TRANSITIONS if source == current]


def check_transition(current: str | None, target: str) -> Transition:
    """
    Look up a transition.

    Raises:
        InvalidTransitionError: pair not in TRANSITIONS (includes re-entering the same status)
    """
    try:
        return TRANSITIONS[(current, target)]
    except KeyError:
        raise InvalidTransitionError(
            current=current,
            target=target,
            allowed=allowed_targets(current),
        ) from None


def require(actor, capability: str) -> None:
    if actor is None or not getattr(actor, capability, False):
        raise NotAuthorizedError(capability=capability)


def lock_distribution(distribution) -> Distribution:
    """Fetch a Distribution with select_for_update(). Call inside transaction.atomic()."""
    pk = distribution.pk if isinstance(distribution, Distribution) else distribution
    try:
        return Distribution.objects.select_for_update().get(pk=pk)
    except (Distribution.DoesNotExist, ValueError, TypeError):
        raise NotFoundError('DISTRIBUTION_NOT_FOUND', distribution_id=pk) from None


def _ensure_receipt_free(receipt_number: str, exclude_pk=None) -> None:
    qs = Distribution.objects.filter(receipt_number=receipt_number)
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    if qs.exists():
        raise ConflictError('DUPLICATE_RECEIPT', receipt_number=receipt_number)


def _save(distribution: Distribution, **kwargs) -> None:
    """Save inside a savepoint so a receipt collision surfaces as ConflictError."""
    try:
        with transaction.atomic():
            distribution.save(**kwargs)
    except IntegrityError as e:
        if distribution.receipt_number and 'receipt' in str(e).lower():
            raise ConflictError('DUPLICATE_RECEIPT', receipt_number=distribution.receipt_number) from None
        raise


def generate_receipt_number(now=None) -> str:
    now = now or timezone.now()
    return f"{woodledger_settings.RECEIPT_PREFIX}-{now:%Y%m%d}-{secrets.randbelow(1000):03d}"


class DistributionWorkflow:
    """Distribution lifecycle methods."""

    @classmethod
    def open(cls, item, member_id, quantity, *, actor, purpose=Purpose.PERSONAL_USE,
             notes='', price_per_unit=None, payment_status=PaymentStatus.NOT_REQUIRED,
             payment_method=None, receipt_number=None) -> Distribution:
        """
        Create a PENDING distribution against a locked item.

        Must run inside transaction.atomic() with `item` obtained from
        lock_item(). No pool changes: stock is only allocated on approval.

        Raises:
            InsufficientStockError: quantity > item.available
            ConflictError: receipt_number already used
        """
        transition = check_transition(None, DistributionStatus.PENDING)
        require(actor, transition.capability)

        if quantity > item.available:
            raise InsufficientStockError(
                available=item.available,
                requested=quantity,
                item_id=item.pk,
            )

        if receipt_number:
            _ensure_receipt_free(receipt_number)

        distribution = Distribution(
            item=item,
            member_id=member_id,
            wood_type=item.wood_type,
            wood_size=item.size,
            unit=item.unit,
            quantity=quantity,
            price_per_unit=price_per_unit if price_per_unit is not None else item.price_per_unit,
            purpose=purpose,
            status=DistributionStatus.PENDING,
            payment_status=payment_status,
            payment_method=payment_method,
            receipt_number=receipt_number or None,
            requested_by=actor.user,
            request_notes=notes or '',
        )
        distribution.recompute_total()
        _save(distribution)

        logger.info(
            "ledger.distribution.requested",
            extra={
                "distribution_id": distribution.pk,
                "item_id": item.pk,
                "member_id": member_id,
                "qty": str(quantity),
                "available": str(item.available),
            },
        )
        return distribution

    @classmethod
    def transition(cls, distribution, target, actor, notes='') -> Distribution:
        """
        Move a distribution to `target` and apply the pool transfer.

        Raises:
            NotFoundError: distribution does not exist
            InvalidTransitionError: (current, target) not in TRANSITIONS
            NotAuthorizedError: actor lacks the transition's capability
            InsufficientStockError: approval finds less available than requested

        Concurrency:
            - Runs under transaction.atomic()
            - Locks the distribution, then the item (inside adjust())
            - Any failure rolls back both rows
        """
        with transaction.atomic():
            locked = lock_distribution(distribution)
            current = locked.status
            step = check_transition(current, target)
            require(actor, step.capability)

            if step.move is not None:
                locked.item = StockRegistry.adjust(
                    locked.item_id,
                    locked.quantity,
                    step.move,
                    distribution=locked,
                    user=actor.user,
                    reason=f"{current} -> {target} {locked.reference}",
                )

            now = timezone.now()
            locked.status = target
            update_fields = ['status', 'updated_at']

            stamp_field, actor_field = STAMPS[target]
            if getattr(locked, stamp_field) is None:
                setattr(locked, stamp_field, now)
                update_fields.append(stamp_field)
            if actor_field and getattr(locked, f"{actor_field}_id") is None:
                setattr(locked, actor_field, actor.user)
                update_fields.append(actor_field)

            if notes:
                note_field = NOTE_FIELDS[target]
                setattr(locked, note_field, notes)
                update_fields.append(note_field)

            locked.save(update_fields=update_fields)

        logger.info(
            f"ledger.distribution.{target.lower()}",
            extra={
                "distribution_id": locked.pk,
                "from": current,
                "to": target,
                "item_id": locked.item_id,
                "qty": str(locked.quantity),
                "user": actor.user_id,
            },
        )
        return locked

    @classmethod
    def reprice(cls, distribution, price_per_unit, actor) -> Distribution:
        """
        Change price_per_unit of an open distribution and recompute total_price.

        Raises:
            InvalidTransitionError: distribution is no longer pending/approved
        """
        require(actor, 'can_write')
        price_per_unit = non_negative(price_per_unit, 'price_per_unit', allow_none=True)

        with transaction.atomic():
            locked = lock_distribution(distribution)
            if not locked.is_open:
                raise InvalidTransitionError(
                    message=f"Cannot reprice a {locked.status} distribution",
                    current=locked.status,
                    target=locked.status,
                )
            locked.price_per_unit = price_per_unit
            locked.recompute_total()
            locked.save(update_fields=['price_per_unit', 'total_price', 'updated_at'])

        logger.info(
            "ledger.distribution.repriced",
            extra={"distribution_id": locked.pk, "price_per_unit": str(price_per_unit),
                   "total_price": str(locked.total_price)},
        )
        return locked

    @classmethod
    def record_payment(cls, distribution, payment_status, actor,
                       payment_method=None, receipt_number=None) -> Distribution:
        """
        Record payment details.

        Raises:
            ValidationError: unknown payment status or method
            ConflictError: receipt_number already used by another distribution
        """
        require(actor, 'can_write')
        choice(payment_status, PaymentStatus, 'payment_status')
        choice(payment_method, PaymentMethod, 'payment_method', allow_none=True)

        with transaction.atomic():
            locked = lock_distribution(distribution)
            locked.payment_status = payment_status
            update_fields = ['payment_status', 'updated_at']
            if payment_method is not None:
                locked.payment_method = payment_method
                update_fields.append('payment_method')
            if receipt_number:
                _ensure_receipt_free(receipt_number, exclude_pk=locked.pk)
                locked.receipt_number = receipt_number
                update_fields.append('receipt_number')
            _save(locked, update_fields=update_fields)

        logger.info(
            "ledger.distribution.payment",
            extra={"distribution_id": locked.pk, "payment_status": payment_status,
                   "receipt_number": locked.receipt_number},
        )
        return locked

    @classmethod
    def issue_receipt(cls, distribution, actor) -> Distribution:
        """
        Give the distribution a generated receipt number (kept if one exists).

        Format: <RECEIPT_PREFIX>-YYYYMMDD-NNN

        Raises:
            ConflictError: no free number after RECEIPT_ATTEMPTS tries
        """
        require(actor, 'can_write')

        with transaction.atomic():
            locked = lock_distribution(distribution)
            if locked.receipt_number:
                return locked

            for _ in range(RECEIPT_ATTEMPTS):
                candidate = generate_receipt_number()
                if Distribution.objects.filter(receipt_number=candidate).exists():
                    continue
                locked.receipt_number = candidate
                _save(locked, update_fields=['receipt_number', 'updated_at'])
                break
            else:
                raise ConflictError(
                    'DUPLICATE_RECEIPT',
                    message='Could not generate a free receipt number',
                    receipt_number=candidate,
                )

        logger.info(
            "ledger.distribution.receipt",
            extra={"distribution_id": locked.pk, "receipt_number": locked.receipt_number},
        )
        return locked


def validate_request(member_id, quantity, purpose, payment_status, payment_method, price_per_unit):
    """Clean the inputs of a new request. Returns (member_id, quantity, price_per_unit)."""
    member_id = positive_int(member_id, 'member_id')
    quantity = clean_quantity(quantity)
    choice(purpose, Purpose, 'purpose')
    choice(payment_status, PaymentStatus, 'payment_status')
    choice(payment_method, PaymentMethod, 'payment_method', allow_none=True)
    price_per_unit = non_negative(price_per_unit, 'price_per_unit', allow_none=True)
    return member_id, quantity, price_per_unit
