"""
Woodledger Admin — read-only views with workflow actions.

Provides:
- StockItem: read-only (pools, derived status) with reserve/unreserve actions
- Distribution: read-only with approve/deliver/cancel/return actions
- Movement: read-only audit trail

Pools and statuses only change through the ledger service, so no model here
can be added, edited or deleted from the admin.
"""

import logging

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from woodledger.exceptions import LedgerError
from woodledger.models import Distribution, DistributionStatus, Movement, StockItem
from woodledger.protocols.actor import Actor

logger = logging.getLogger(__name__)


class ReadOnlyAdmin(admin.ModelAdmin):

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =========================================================================
# STOCK ITEM ADMIN
# =========================================================================

@admin.register(StockItem)
class StockItemAdmin(ReadOnlyAdmin):
    """StockItem admin — read-only. Pools only change via the ledger."""

    list_display = ['wood_type', 'size', 'quality', 'unit', 'available', 'allocated',
                    'distributed', 'status', 'reserved', 'expiry_date']
    list_filter = ['status', 'quality', 'unit', 'reserved']
    search_fields = ['wood_type', 'species', 'size', 'location']
    readonly_fields = ['wood_type', 'species', 'size', 'unit', 'quality', 'source', 'location',
                       'available', 'allocated', 'distributed', 'price_per_unit',
                       'arrival_date', 'expiry_date', 'minimum_threshold', 'reserved',
                       'status', 'added_by', 'notes', 'created_at', 'updated_at']
    date_hierarchy = 'arrival_date'
    actions = ['reserve_items', 'unreserve_items']

    @admin.action(description=_('Mark selected items as reserved'))
    def reserve_items(self, request, queryset):
        from woodledger import ledger

        for item in queryset:
            ledger.reserve(item.pk, user=request.user)
        self.message_user(request, _('{count} item(s) reserved.').format(count=queryset.count()))

    @admin.action(description=_('Clear the reserved flag'))
    def unreserve_items(self, request, queryset):
        from woodledger import ledger

        for item in queryset:
            ledger.unreserve(item.pk, user=request.user)
        self.message_user(request, _('{count} item(s) released.').format(count=queryset.count()))


# =========================================================================
# DISTRIBUTION ADMIN (read-only with workflow actions)
# =========================================================================

@admin.register(Distribution)
class DistributionAdmin(ReadOnlyAdmin):
    """Distribution admin — read-only with workflow actions."""

    list_display = ['id', 'member_id', 'wood_type', 'wood_size', 'quantity', 'unit',
                    'status', 'payment_status', 'total_price', 'requested_at']
    list_filter = ['status', 'purpose', 'payment_status']
    search_fields = ['wood_type', 'receipt_number', 'member_id']
    readonly_fields = [f.name for f in Distribution._meta.fields]
    date_hierarchy = 'requested_at'
    actions = ['approve_distributions', 'deliver_distributions',
               'cancel_distributions', 'return_distributions']

    def _run(self, request, queryset, operation, statuses):
        from woodledger import ledger

        actor = Actor.from_user(request.user)
        count = 0
        for distribution in queryset.filter(status__in=statuses):
            try:
                getattr(ledger, operation)(distribution.pk, actor, notes=_('Via admin'))
                count += 1
            except LedgerError as exc:
                logger.warning("%s: failed for %s: %s", operation, distribution.reference, exc)
        return count

    @admin.action(description=_('Approve selected distributions'))
    def approve_distributions(self, request, queryset):
        count = self._run(request, queryset, 'approve', [DistributionStatus.PENDING])
        self.message_user(request, _('{count} distribution(s) approved.').format(count=count))

    @admin.action(description=_('Deliver selected distributions'))
    def deliver_distributions(self, request, queryset):
        count = self._run(request, queryset, 'deliver', [DistributionStatus.APPROVED])
        self.message_user(request, _('{count} distribution(s) delivered.').format(count=count))

    @admin.action(description=_('Cancel selected distributions'))
    def cancel_distributions(self, request, queryset):
        count = self._run(request, queryset, 'cancel',
                          [DistributionStatus.PENDING, DistributionStatus.APPROVED])
        self.message_user(request, _('{count} distribution(s) cancelled.').format(count=count))

    @admin.action(description=_('Mark selected distributions as returned'))
    def return_distributions(self, request, queryset):
        count = self._run(request, queryset, 'mark_returned', [DistributionStatus.DELIVERED])
        self.message_user(request, _('{count} distribution(s) returned.').format(count=count))


# =========================================================================
# MOVEMENT ADMIN (read-only audit trail)
# =========================================================================

@admin.register(Movement)
class MovementAdmin(ReadOnlyAdmin):
    """Movement admin — read-only. Immutable audit trail."""

    list_display = ['timestamp', 'item', 'kind', 'quantity', 'available_after',
                    'allocated_after', 'distributed_after', 'reason', 'user']
    list_filter = ['kind', 'timestamp']
    search_fields = ['reason']
    readonly_fields = ['item', 'distribution', 'kind', 'quantity', 'available_after',
                       'allocated_after', 'distributed_after', 'reason', 'timestamp', 'user']
    date_hierarchy = 'timestamp'
