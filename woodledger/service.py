"""
Ledger Service — The single public interface for all ledger operations.

Usage:
    from woodledger import ledger, LedgerError
    from woodledger.protocols import Actor

    item = ledger.intake('Teak', '2x4', Decimal('100'), minimum_threshold=Decimal('10'))
    dist = ledger.request_distribution(member.pk, item.pk, Decimal('30'), actor=actor)
    ledger.approve(dist.pk, actor)     # available 70, allocated 30
    ledger.deliver(dist.pk, actor)     # allocated 0, distributed 30
"""

import logging

from django.db import transaction
from django.utils import timezone

from woodledger.adapters.members import get_member_directory
from woodledger.classify import classify
from woodledger.conf import woodledger_settings
from woodledger.exceptions import NotFoundError, ValidationError
from woodledger.models.distribution import Distribution
from woodledger.models.enums import DistributionStatus, MoveKind, PaymentStatus, Purpose
from woodledger.models.stock_item import StockItem
from woodledger.services.queries import DistributionQueries, StockQueries
from woodledger.services.registry import StockRegistry, lock_item
from woodledger.services.workflow import DistributionWorkflow, require, validate_request

logger = logging.getLogger('woodledger')


class Ledger:
    """
    Single interface for all ledger operations.

    Every mutating call runs as one atomic unit: it either updates the
    distribution and its stock item together, or changes nothing.
    Mutating distribution calls take an `actor` (woodledger.protocols.Actor)
    whose capability flags were resolved upstream.
    """

    # ══════════════════════════════════════════════════════════════
    # STOCK ITEMS
    # ══════════════════════════════════════════════════════════════

    intake = StockRegistry.intake
    update_item = StockRegistry.update_item
    remove_item = StockRegistry.remove_item
    refresh_statuses = StockRegistry.refresh_statuses

    @classmethod
    def get_item(cls, item_id) -> StockItem:
        try:
            return StockItem.objects.get(pk=item_id)
        except (StockItem.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('ITEM_NOT_FOUND', item_id=item_id) from None

    @classmethod
    def restock(cls, item_id, quantity, user=None, reason='Restock') -> StockItem:
        """Add quantity to the available pool."""
        return StockRegistry.adjust(item_id, quantity, MoveKind.ADD, user=user, reason=reason)

    @classmethod
    def reserve(cls, item_id, user=None) -> StockItem:
        return StockRegistry.set_reserved(item_id, True, user=user)

    @classmethod
    def unreserve(cls, item_id, user=None) -> StockItem:
        return StockRegistry.set_reserved(item_id, False, user=user)

    @staticmethod
    def classify(item, now=None):
        return classify(item, now)

    by_status = StockQueries.by_status
    by_type = StockQueries.by_type
    expiring_within = StockQueries.expiring_within
    fifo = StockQueries.fifo
    find_batch = StockQueries.find_batch
    low_stock = StockQueries.low_stock
    inventory_summary = StockQueries.inventory_summary
    wood_type_stats = StockQueries.wood_type_stats

    # ══════════════════════════════════════════════════════════════
    # DISTRIBUTIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get_distribution(cls, distribution_id) -> Distribution:
        try:
            return Distribution.objects.select_related('item').get(pk=distribution_id)
        except (Distribution.DoesNotExist, ValueError, TypeError):
            raise NotFoundError('DISTRIBUTION_NOT_FOUND', distribution_id=distribution_id) from None

    @classmethod
    def request_distribution(cls, member_id, item_id, quantity, purpose=Purpose.PERSONAL_USE,
                             notes='', *, actor, price_per_unit=None,
                             payment_status=PaymentStatus.NOT_REQUIRED,
                             payment_method=None, receipt_number=None) -> Distribution:
        """
        Create a PENDING distribution after checking the item's available pool.

        The stock check and the insert run in one transaction with the item
        row locked, so the check cannot be invalidated before the insert.

        Raises:
            ValidationError: bad quantity/purpose/payment fields, expired item
            NotAuthorizedError: actor lacks can_write
            NotFoundError: unknown member or item
            InsufficientStockError: quantity > available
            ConflictError: receipt_number already used
        """
        member_id, quantity, price_per_unit = validate_request(
            member_id, quantity, purpose, payment_status, payment_method, price_per_unit
        )
        require(actor, 'can_write')

        if not get_member_directory().member_exists(member_id):
            raise NotFoundError('MEMBER_NOT_FOUND', member_id=member_id)

        with transaction.atomic():
            item = lock_item(item_id)

            if woodledger_settings.REJECT_EXPIRED_REQUESTS and item.expiry_date is not None \
                    and item.expiry_date <= timezone.now():
                raise ValidationError(
                    'ITEM_EXPIRED',
                    item_id=item.pk,
                    expiry_date=item.expiry_date.isoformat(),
                )

            return DistributionWorkflow.open(
                item,
                member_id,
                quantity,
                actor=actor,
                purpose=purpose,
                notes=notes,
                price_per_unit=price_per_unit,
                payment_status=payment_status,
                payment_method=payment_method,
                receipt_number=receipt_number,
            )

    @classmethod
    def approve(cls, distribution_id, actor, notes='') -> Distribution:
        """
        Pending -> Approved. Allocates the quantity (available -> allocated).

        Availability is checked again here: other requests may have
        consumed the pool since this one was created.
        """
        return DistributionWorkflow.transition(distribution_id, DistributionStatus.APPROVED, actor, notes)

    @classmethod
    def deliver(cls, distribution_id, actor, notes='') -> Distribution:
        """Approved -> Delivered. Moves the quantity from allocated to distributed."""
        return DistributionWorkflow.transition(distribution_id, DistributionStatus.DELIVERED, actor, notes)

    @classmethod
    def cancel(cls, distribution_id, actor, notes='') -> Distribution:
        """Pending|Approved -> Cancelled. An approved request gives its allocation back."""
        return DistributionWorkflow.transition(distribution_id, DistributionStatus.CANCELLED, actor, notes)

    @classmethod
    def mark_returned(cls, distribution_id, actor, notes='') -> Distribution:
        """Delivered -> Returned. Moves the quantity from distributed back to available."""
        return DistributionWorkflow.transition(distribution_id, DistributionStatus.RETURNED, actor, notes)

    reprice = DistributionWorkflow.reprice
    record_payment = DistributionWorkflow.record_payment
    issue_receipt = DistributionWorkflow.issue_receipt

    summary = DistributionQueries.summary
    member_history = DistributionQueries.member_history
    pending = DistributionQueries.pending
