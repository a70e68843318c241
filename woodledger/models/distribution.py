"""
Distribution model — a member's request for wood from one stock item.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from woodledger.models.enums import (
    DistributionStatus,
    PaymentMethod,
    PaymentStatus,
    Purpose,
    UnitOfMeasure,
)


class DistributionQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=DistributionStatus.PENDING).order_by('requested_at')

    def for_member(self, member_id):
        return self.filter(member_id=member_id).order_by('-requested_at')

    def delivered_between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(delivered_at__gte=start)
        if end is not None:
            qs = qs.filter(delivered_at__lte=end)
        return qs


class Distribution(models.Model):
    """
    Request for wood against one StockItem.

    LIFECYCLE:

        ┌─────────┐  approve()  ┌──────────┐  deliver()  ┌───────────┐  mark_returned()  ┌──────────┐
        │ PENDING │ ──────────► │ APPROVED │ ──────────► │ DELIVERED │ ────────────────► │ RETURNED │
        └─────────┘             └──────────┘             └───────────┘                   └──────────┘
             │                       │
             │ cancel()              │ cancel()
             ▼                       ▼
        ┌──────────────────────────────┐
        │          CANCELLED           │
        └──────────────────────────────┘

    Pool effects live in woodledger.services.workflow.TRANSITIONS.

    wood_type, wood_size and unit are copied from the item at creation so
    later edits to the item do not rewrite history.
    """

    item = models.ForeignKey(
        'woodledger.StockItem',
        on_delete=models.PROTECT,
        related_name='distributions',
        verbose_name=_('Stock item'),
    )
    member_id = models.PositiveIntegerField(db_index=True, verbose_name=_('Member'))

    # Snapshot
    wood_type = models.CharField(max_length=100, verbose_name=_('Wood type'))
    wood_size = models.CharField(max_length=50, verbose_name=_('Wood size'))
    unit = models.CharField(
        max_length=20,
        choices=UnitOfMeasure.choices,
        default=UnitOfMeasure.PIECES,
        verbose_name=_('Unit'),
    )

    quantity = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        verbose_name=_('Quantity'),
    )
    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Price per unit'),
    )
    total_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        editable=False,
        verbose_name=_('Total price'),
    )
    purpose = models.CharField(
        max_length=30,
        choices=Purpose.choices,
        default=Purpose.PERSONAL_USE,
        db_index=True,
        verbose_name=_('Purpose'),
    )

    status = models.CharField(
        max_length=20,
        choices=DistributionStatus.choices,
        default=DistributionStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )

    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.NOT_REQUIRED,
        db_index=True,
        verbose_name=_('Payment status'),
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        null=True,
        blank=True,
        verbose_name=_('Payment method'),
    )
    receipt_number = models.CharField(
        max_length=40,
        null=True,
        blank=True,
        unique=True,
        verbose_name=_('Receipt number'),
    )

    # Actors
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Requested by'),
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Approved by'),
    )
    delivered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Delivered by'),
    )

    # Timestamps, each set once
    requested_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Requested at'))
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Approved at'))
    delivered_at = models.DateTimeField(null=True, blank=True, db_index=True, verbose_name=_('Delivered at'))
    returned_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Returned at'))
    cancelled_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cancelled at'))

    request_notes = models.TextField(blank=True, default='', verbose_name=_('Request notes'))
    approval_notes = models.TextField(blank=True, default='', verbose_name=_('Approval notes'))
    distribution_notes = models.TextField(blank=True, default='', verbose_name=_('Distribution notes'))

    updated_at = models.DateTimeField(auto_now=True)

    objects = DistributionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Distribution')
        verbose_name_plural = _('Distributions')
        ordering = ['-requested_at']
        permissions = [
            ('approve_distribution', _('Can approve distributions')),
            ('deliver_distribution', _('Can deliver distributions')),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gt=0), name='distribution_quantity_positive'),
        ]
        indexes = [
            models.Index(fields=['member_id', 'requested_at'], name='wl_dist_member_idx'),
            models.Index(fields=['status', 'delivered_at'], name='wl_dist_status_deliv_idx'),
        ]

    def recompute_total(self) -> Decimal | None:
        """Set total_price from quantity and price_per_unit (None when either is missing)."""
        if self.quantity is not None and self.price_per_unit is not None:
            self.total_price = (self.quantity * self.price_per_unit).quantize(Decimal('0.01'))
        else:
            self.total_price = None
        return self.total_price

    @property
    def is_open(self) -> bool:
        """Still holds or awaits stock (pending or approved)?"""
        return self.status in (DistributionStatus.PENDING, DistributionStatus.APPROVED)

    @property
    def reference(self) -> str:
        return f"dist:{self.pk}"

    def __str__(self) -> str:
        return f"{self.reference} {self.quantity} {self.unit} {self.wood_type} {self.wood_size} [{self.status}]"
