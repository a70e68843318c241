"""
Tests for the distribution lifecycle (request, approve, deliver, cancel, return).
"""

import re
from datetime import timedelta
from decimal import Decimal

import pytest
from django.test import override_settings
from django.utils import timezone

from woodledger import (
    ConflictError,
    InsufficientStockError,
    InvalidTransitionError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
    ledger,
)
from woodledger.models import (
    Distribution,
    DistributionStatus,
    Movement,
    MoveKind,
    PaymentMethod,
    PaymentStatus,
    Purpose,
    StockStatus,
)
from woodledger.protocols import Actor
from woodledger.services.workflow import TRANSITIONS, allowed_targets


pytestmark = pytest.mark.django_db


def pools(item):
    item.refresh_from_db()
    return item.available, item.allocated, item.distributed


class TestFullLifecycle:
    """Request 30 of 100, approve, deliver, return."""

    def test_lifecycle(self, item, request_dist, actor):
        dist = request_dist('30')
        assert dist.status == DistributionStatus.PENDING
        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))

        dist = ledger.approve(dist.pk, actor)
        assert dist.status == DistributionStatus.APPROVED
        assert pools(item) == (Decimal('70'), Decimal('30'), Decimal('0'))
        assert item.status == StockStatus.AVAILABLE

        dist = ledger.deliver(dist.pk, actor)
        assert dist.status == DistributionStatus.DELIVERED
        assert pools(item) == (Decimal('70'), Decimal('0'), Decimal('30'))

        dist = ledger.mark_returned(dist.pk, actor)
        assert dist.status == DistributionStatus.RETURNED
        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))

    def test_total_conserved_at_every_step(self, item, request_dist, actor):
        dist = request_dist('30')
        for step in (ledger.approve, ledger.deliver):
            step(dist.pk, actor)
            item.refresh_from_db()
            assert item.total == Decimal('100')

    def test_stamps_timestamps_and_actors(self, item, request_dist, actor, user):
        dist = request_dist('10')
        dist = ledger.approve(dist.pk, actor, notes='ok')
        assert dist.approved_at is not None
        assert dist.approved_by == user
        assert dist.approval_notes == 'ok'

        dist = ledger.deliver(dist.pk, actor, notes='picked up')
        assert dist.delivered_at is not None
        assert dist.delivered_by == user
        assert dist.distribution_notes == 'picked up'

        dist = ledger.mark_returned(dist.pk, actor)
        assert dist.returned_at is not None

    def test_movements_reference_distribution(self, item, request_dist, actor):
        dist = request_dist('10')
        ledger.approve(dist.pk, actor)
        ledger.deliver(dist.pk, actor)

        kinds = list(Movement.objects.filter(distribution=dist).values_list('kind', flat=True))
        assert kinds == [MoveKind.ALLOCATE, MoveKind.DISTRIBUTE]

    def test_approval_can_make_item_low_stock(self, item, request_dist, actor):
        dist = request_dist('95')
        ledger.approve(dist.pk, actor)
        item.refresh_from_db()
        assert item.status == StockStatus.LOW_STOCK


class TestRequestDistribution:
    """Tests for ledger.request_distribution()."""

    def test_snapshot_and_price(self, item, request_dist, member, user):
        dist = request_dist('30', purpose=Purpose.CONSTRUCTION, notes='roof')

        assert dist.member_id == member.pk
        assert dist.wood_type == 'Teak'
        assert dist.wood_size == '2x4'
        assert dist.unit == item.unit
        assert dist.price_per_unit == Decimal('5.00')
        assert dist.total_price == Decimal('150.00')
        assert dist.purpose == Purpose.CONSTRUCTION
        assert dist.request_notes == 'roof'
        assert dist.requested_by == user
        assert dist.payment_status == PaymentStatus.NOT_REQUIRED

    def test_explicit_price(self, request_dist):
        dist = request_dist('3', price_per_unit=Decimal('1.10'))
        assert dist.total_price == Decimal('3.30')

    def test_no_price_leaves_total_empty(self, member, actor):
        free = ledger.intake('Bamboo', 'pole', Decimal('20'))
        dist = ledger.request_distribution(member.pk, free.pk, Decimal('2'), actor=actor)
        assert dist.total_price is None

    def test_whole_available_pool(self, request_dist):
        dist = request_dist('100')
        assert dist.quantity == Decimal('100')

    def test_insufficient_stock_creates_nothing(self, member, actor):
        small = ledger.intake('Teak', '2x4', Decimal('30'))

        with pytest.raises(InsufficientStockError) as exc:
            ledger.request_distribution(member.pk, small.pk, Decimal('40'), actor=actor)

        assert exc.value.available == Decimal('30')
        assert exc.value.requested == Decimal('40')
        assert 'Requested 40, only 30' in str(exc.value)
        assert Distribution.objects.count() == 0

    @pytest.mark.parametrize('quantity', ['0', '-5', 'abc', None])
    def test_invalid_quantity(self, request_dist, quantity):
        with pytest.raises(ValidationError):
            request_dist(quantity)
        assert Distribution.objects.count() == 0

    def test_too_many_decimal_places(self, request_dist):
        with pytest.raises(ValidationError) as exc:
            request_dist('1.005')
        assert exc.value.data['field'] == 'quantity'

    def test_unknown_purpose(self, request_dist):
        with pytest.raises(ValidationError) as exc:
            request_dist('1', purpose='Art')
        assert exc.value.code == 'INVALID_CHOICE'

    def test_unknown_item(self, member, actor):
        with pytest.raises(NotFoundError) as exc:
            ledger.request_distribution(member.pk, 999999, Decimal('1'), actor=actor)
        assert exc.value.code == 'ITEM_NOT_FOUND'

    def test_unknown_member(self, item, actor):
        with pytest.raises(NotFoundError) as exc:
            ledger.request_distribution(999999, item.pk, Decimal('1'), actor=actor)
        assert exc.value.code == 'MEMBER_NOT_FOUND'
        assert Distribution.objects.count() == 0

    @pytest.mark.parametrize('member_id', ['abc', -3, 0, 1.5, True])
    def test_malformed_member_id(self, item, actor, member_id):
        with pytest.raises(ValidationError) as exc:
            ledger.request_distribution(member_id, item.pk, Decimal('1'), actor=actor)
        assert exc.value.data['field'] == 'member_id'
        assert Distribution.objects.count() == 0

    def test_member_id_as_digit_string(self, item, member, actor):
        dist = ledger.request_distribution(str(member.pk), item.pk, Decimal('1'), actor=actor)
        assert dist.member_id == member.pk

    @override_settings(WOODLEDGER={'MEMBER_DIRECTORY': 'woodledger.adapters.noop.NoopMemberDirectory'})
    def test_noop_member_directory(self, item, actor):
        dist = ledger.request_distribution(424242, item.pk, Decimal('1'), actor=actor)
        assert dist.member_id == 424242

    @override_settings(WOODLEDGER={'MEMBER_DIRECTORY': 'woodledger.adapters.noop.NoopMemberDirectory'})
    def test_negative_member_id_with_noop_directory(self, item, actor):
        with pytest.raises(ValidationError) as exc:
            ledger.request_distribution(-1, item.pk, Decimal('1'), actor=actor)
        assert exc.value.data['field'] == 'member_id'

    def test_expired_item_rejected(self, member, actor):
        old = ledger.intake('Pine', '1x6', Decimal('50'),
                            expiry_date=timezone.now() - timedelta(days=1))

        with pytest.raises(ValidationError) as exc:
            ledger.request_distribution(member.pk, old.pk, Decimal('5'), actor=actor)
        assert exc.value.code == 'ITEM_EXPIRED'

    @override_settings(WOODLEDGER={'REJECT_EXPIRED_REQUESTS': False})
    def test_expired_item_allowed_when_configured(self, member, actor):
        old = ledger.intake('Pine', '1x6', Decimal('50'),
                            expiry_date=timezone.now() - timedelta(days=1))
        dist = ledger.request_distribution(member.pk, old.pk, Decimal('5'), actor=actor)
        assert dist.status == DistributionStatus.PENDING

    def test_pending_requests_do_not_hold_stock(self, request_dist):
        """Only approval moves stock, so two requests may each ask for most of the pool."""
        request_dist('60')
        request_dist('60')
        assert Distribution.objects.pending().count() == 2


class TestTransitionLegality:
    """Any transition outside TRANSITIONS fails and changes nothing."""

    def test_table_shape(self):
        assert allowed_targets(None) == [DistributionStatus.PENDING]
        assert set(allowed_targets(DistributionStatus.PENDING)) == {
            DistributionStatus.APPROVED, DistributionStatus.CANCELLED,
        }
        assert set(allowed_targets(DistributionStatus.APPROVED)) == {
            DistributionStatus.DELIVERED, DistributionStatus.CANCELLED,
        }
        assert allowed_targets(DistributionStatus.DELIVERED) == [DistributionStatus.RETURNED]
        assert allowed_targets(DistributionStatus.CANCELLED) == []
        assert allowed_targets(DistributionStatus.RETURNED) == []
        assert len(TRANSITIONS) == 6

    def test_double_approval_does_not_double_allocate(self, item, request_dist, actor):
        dist = request_dist('30')
        ledger.approve(dist.pk, actor)

        with pytest.raises(InvalidTransitionError) as exc:
            ledger.approve(dist.pk, actor)

        assert exc.value.data['current'] == DistributionStatus.APPROVED
        assert pools(item) == (Decimal('70'), Decimal('30'), Decimal('0'))

    def test_deliver_pending(self, item, request_dist, actor):
        dist = request_dist('30')
        with pytest.raises(InvalidTransitionError):
            ledger.deliver(dist.pk, actor)
        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))
        dist.refresh_from_db()
        assert dist.status == DistributionStatus.PENDING

    def test_return_pending(self, request_dist, actor):
        dist = request_dist('30')
        with pytest.raises(InvalidTransitionError):
            ledger.mark_returned(dist.pk, actor)

    def test_cancel_delivered(self, item, request_dist, actor):
        dist = request_dist('30')
        ledger.approve(dist.pk, actor)
        ledger.deliver(dist.pk, actor)

        with pytest.raises(InvalidTransitionError) as exc:
            ledger.cancel(dist.pk, actor)

        assert exc.value.data['allowed'] == [DistributionStatus.RETURNED]
        assert pools(item) == (Decimal('70'), Decimal('0'), Decimal('30'))

    @pytest.mark.parametrize('operation', ['approve', 'deliver', 'cancel', 'mark_returned'])
    def test_cancelled_is_terminal(self, request_dist, actor, operation):
        dist = request_dist('30')
        ledger.cancel(dist.pk, actor)

        with pytest.raises(InvalidTransitionError):
            getattr(ledger, operation)(dist.pk, actor)

    @pytest.mark.parametrize('operation', ['approve', 'deliver', 'cancel', 'mark_returned'])
    def test_returned_is_terminal(self, item, request_dist, actor, operation):
        dist = request_dist('30')
        ledger.approve(dist.pk, actor)
        ledger.deliver(dist.pk, actor)
        ledger.mark_returned(dist.pk, actor)

        with pytest.raises(InvalidTransitionError):
            getattr(ledger, operation)(dist.pk, actor)
        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))

    def test_unknown_distribution(self, actor):
        with pytest.raises(NotFoundError) as exc:
            ledger.approve(999999, actor)
        assert exc.value.code == 'DISTRIBUTION_NOT_FOUND'


class TestCancel:

    def test_cancel_pending_leaves_pools(self, item, request_dist, actor):
        dist = request_dist('30')
        dist = ledger.cancel(dist.pk, actor, notes='changed mind')

        assert dist.status == DistributionStatus.CANCELLED
        assert dist.cancelled_at is not None
        assert dist.approval_notes == 'changed mind'
        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))

    def test_cancel_approved_releases_allocation(self, item, request_dist, actor):
        dist = request_dist('30')
        ledger.approve(dist.pk, actor)
        ledger.cancel(dist.pk, actor)

        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))
        assert Movement.objects.filter(distribution=dist).last().kind == MoveKind.RELEASE


class TestApprovalRecheck:
    """Approval re-validates the available pool."""

    def test_second_approval_fails_when_pool_consumed(self, item, request_dist, actor):
        first = request_dist('60')
        second = request_dist('60')
        ledger.approve(first.pk, actor)

        with pytest.raises(InsufficientStockError):
            ledger.approve(second.pk, actor)

        second.refresh_from_db()
        assert second.status == DistributionStatus.PENDING
        assert second.approved_at is None
        assert pools(item) == (Decimal('40'), Decimal('60'), Decimal('0'))

    def test_no_negative_pools(self, item, request_dist, actor):
        dists = [request_dist('40') for _ in range(3)]
        for dist in dists:
            try:
                ledger.approve(dist.pk, actor)
            except InsufficientStockError:
                pass

        available, allocated, distributed = pools(item)
        assert available == Decimal('20')
        assert allocated == Decimal('80')
        assert min(available, allocated, distributed) >= 0


class TestCapabilities:

    def test_clerk_can_request_but_not_approve(self, item, member, clerk):
        dist = ledger.request_distribution(member.pk, item.pk, Decimal('5'), actor=clerk)

        with pytest.raises(NotAuthorizedError) as exc:
            ledger.approve(dist.pk, clerk)

        assert exc.value.data['capability'] == 'can_approve'
        dist.refresh_from_db()
        assert dist.status == DistributionStatus.PENDING
        assert pools(item) == (Decimal('100'), Decimal('0'), Decimal('0'))

    def test_approver_cannot_deliver_without_flag(self, request_dist, user):
        dist = request_dist('5')
        approver = Actor(user=user, can_approve=True)
        ledger.approve(dist.pk, approver)

        with pytest.raises(NotAuthorizedError):
            ledger.deliver(dist.pk, approver)

    def test_read_only_actor_cannot_request(self, item, member, user):
        with pytest.raises(NotAuthorizedError):
            ledger.request_distribution(member.pk, item.pk, Decimal('5'), actor=Actor(user=user))

    def test_missing_actor(self, request_dist):
        dist = request_dist('5')
        with pytest.raises(NotAuthorizedError):
            ledger.cancel(dist.pk, None)

    def test_actor_from_permissions(self, item, member, approver_user):
        actor = Actor.from_user(approver_user)
        assert actor.can_approve and actor.can_deliver and actor.can_write

        dist = ledger.request_distribution(member.pk, item.pk, Decimal('5'), actor=actor)
        dist = ledger.approve(dist.pk, actor)
        assert dist.approved_by == approver_user

    def test_actor_without_permissions(self, user):
        actor = Actor.from_user(user)
        assert not (actor.can_approve or actor.can_deliver or actor.can_write)


class TestPricingAndPayment:

    def test_reprice_open_distribution(self, request_dist, actor):
        dist = request_dist('30')
        dist = ledger.reprice(dist.pk, Decimal('6.00'), actor)
        assert dist.total_price == Decimal('180.00')

    def test_reprice_to_none_clears_total(self, request_dist, actor):
        dist = request_dist('30')
        dist = ledger.reprice(dist.pk, None, actor)
        assert dist.total_price is None

    def test_reprice_delivered_fails(self, request_dist, actor):
        dist = request_dist('30')
        ledger.approve(dist.pk, actor)
        ledger.deliver(dist.pk, actor)

        with pytest.raises(InvalidTransitionError):
            ledger.reprice(dist.pk, Decimal('1'), actor)
        dist.refresh_from_db()
        assert dist.total_price == Decimal('150.00')

    def test_record_payment(self, request_dist, actor):
        dist = request_dist('30')
        dist = ledger.record_payment(dist.pk, PaymentStatus.PAID, actor,
                                     payment_method=PaymentMethod.CASH, receipt_number='R-001')
        dist.refresh_from_db()
        assert dist.payment_status == PaymentStatus.PAID
        assert dist.payment_method == PaymentMethod.CASH
        assert dist.receipt_number == 'R-001'

    def test_record_payment_unknown_status(self, request_dist, actor):
        dist = request_dist('30')
        with pytest.raises(ValidationError):
            ledger.record_payment(dist.pk, 'Bartered', actor)

    def test_duplicate_receipt_on_request(self, request_dist):
        request_dist('1', receipt_number='R-7')
        with pytest.raises(ConflictError) as exc:
            request_dist('1', receipt_number='R-7')
        assert exc.value.code == 'DUPLICATE_RECEIPT'
        assert Distribution.objects.count() == 1

    def test_duplicate_receipt_on_payment(self, request_dist, actor):
        request_dist('1', receipt_number='R-8')
        other = request_dist('1')
        with pytest.raises(ConflictError):
            ledger.record_payment(other.pk, PaymentStatus.PAID, actor, receipt_number='R-8')

    def test_same_receipt_on_same_distribution(self, request_dist, actor):
        dist = request_dist('1', receipt_number='R-9')
        dist = ledger.record_payment(dist.pk, PaymentStatus.PAID, actor, receipt_number='R-9')
        assert dist.receipt_number == 'R-9'

    def test_issue_receipt(self, request_dist, actor):
        dist = request_dist('1')
        dist = ledger.issue_receipt(dist.pk, actor)
        assert re.fullmatch(r'DFG-\d{8}-\d{3}', dist.receipt_number)

    def test_issue_receipt_keeps_existing(self, request_dist, actor):
        dist = request_dist('1', receipt_number='MANUAL-1')
        dist = ledger.issue_receipt(dist.pk, actor)
        assert dist.receipt_number == 'MANUAL-1'
