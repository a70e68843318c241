"""
StockItem model — one wood batch and its three quantity pools.
"""

from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinLengthValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from woodledger.models.enums import StockStatus, UnitOfMeasure, WoodQuality


class StockItemQuerySet(models.QuerySet):
    """Custom QuerySet for StockItem with read filters."""

    def with_status(self, status, now=None):
        """Items whose status, derived at `now`, equals `status`."""
        from woodledger.classify import status_q
        return self.filter(status_q(status, now))

    def of_type(self, wood_type):
        return self.filter(wood_type__iexact=wood_type)

    def not_expired(self, now=None):
        now = now or timezone.now()
        return self.filter(Q(expiry_date__isnull=True) | Q(expiry_date__gt=now))

    def expiring_within(self, days, now=None):
        """Items expiring in [now, now + days], soonest first."""
        now = now or timezone.now()
        return self.filter(
            expiry_date__isnull=False,
            expiry_date__gte=now,
            expiry_date__lte=now + timedelta(days=days),
        ).not_expired(now).order_by('expiry_date')

    def fifo(self, wood_type, size):
        """Matching batches, oldest arrival first."""
        return self.filter(
            wood_type__iexact=wood_type,
            size__iexact=size,
        ).order_by('arrival_date', 'pk')


class StockItem(models.Model):
    """
    A batch of wood identified by type, size, quality and location.

    POOLS:

        intake/add ──► available ──allocate──► allocated ──distribute──► distributed
                           ▲                      │                          │
                           └──────── release ─────┘                          │
                           └──────────────────────── return ─────────────────┘

    Pools only change through StockRegistry.adjust(), which re-derives
    `status` and writes it in the same UPDATE as the quantities.
    """

    wood_type = models.CharField(
        max_length=100,
        validators=[MinLengthValidator(2)],
        db_index=True,
        verbose_name=_('Wood type'),
    )
    species = models.CharField(max_length=100, blank=True, default='', verbose_name=_('Species'))
    size = models.CharField(max_length=50, verbose_name=_('Size'))
    unit = models.CharField(
        max_length=20,
        choices=UnitOfMeasure.choices,
        default=UnitOfMeasure.PIECES,
        verbose_name=_('Unit'),
    )
    quality = models.CharField(
        max_length=20,
        choices=WoodQuality.choices,
        default=WoodQuality.STANDARD,
        db_index=True,
        verbose_name=_('Quality'),
    )
    source = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Source'),
        help_text=_('Where the wood came from'),
    )
    location = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Location'),
        help_text=_('Storage location'),
    )

    # Pools
    available = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Available'),
    )
    allocated = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Allocated'),
    )
    distributed = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Distributed'),
    )

    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Price per unit'),
    )
    arrival_date = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Arrival date'))
    expiry_date = models.DateTimeField(null=True, blank=True, db_index=True, verbose_name=_('Expiry date'))
    minimum_threshold = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('10'),
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=_('Minimum threshold'),
        help_text=_('At or below this quantity the item is low on stock'),
    )

    reserved = models.BooleanField(
        default=False,
        verbose_name=_('Reserved'),
        help_text=_('Manual override: shows the item as Reserved until cleared'),
    )
    status = models.CharField(
        max_length=20,
        choices=StockStatus.choices,
        default=StockStatus.OUT_OF_STOCK,
        db_index=True,
        editable=False,
        verbose_name=_('Status'),
    )

    added_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Added by'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Notes'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockItemQuerySet.as_manager()

    class Meta:
        verbose_name = _('Stock item')
        verbose_name_plural = _('Stock items')
        ordering = ['arrival_date']
        constraints = [
            models.CheckConstraint(condition=Q(available__gte=0), name='stock_item_available_non_negative'),
            models.CheckConstraint(condition=Q(allocated__gte=0), name='stock_item_allocated_non_negative'),
            models.CheckConstraint(condition=Q(distributed__gte=0), name='stock_item_distributed_non_negative'),
        ]
        indexes = [
            models.Index(fields=['wood_type', 'size'], name='wl_item_type_size_idx'),
            models.Index(fields=['available'], name='wl_item_available_idx'),
        ]

    @property
    def total(self) -> Decimal:
        """Everything ever taken in, net of returns: available + allocated + distributed."""
        return self.available + self.allocated + self.distributed

    @property
    def is_expired(self) -> bool:
        if self.expiry_date is None:
            return False
        return self.expiry_date <= timezone.now()

    @property
    def is_low_stock(self) -> bool:
        return self.available <= self.minimum_threshold

    def __str__(self) -> str:
        return f"{self.wood_type} {self.size} ({self.quality}): {self.available} {self.unit}"
