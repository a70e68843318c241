"""
Movement model — Immutable audit trail of pool transfers.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from woodledger.models.enums import MoveKind


class Movement(models.Model):
    """
    Immutable record of one pool transfer on a StockItem.

    Rules:
    - NEVER update() or delete(); StockRegistry.remove_item() is the one
      place that drops the movements of an item nothing else refers to
    - Written by StockRegistry.adjust() in the same transaction as the
      pool change, with the pools as they stand afterwards
    """

    item = models.ForeignKey(
        'woodledger.StockItem',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Stock item'),
    )
    distribution = models.ForeignKey(
        'woodledger.Distribution',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Distribution'),
    )
    kind = models.CharField(max_length=20, choices=MoveKind.choices, verbose_name=_('Kind'))
    quantity = models.DecimalField(max_digits=10, decimal_places=2, verbose_name=_('Quantity'))

    # Pools after the move
    available_after = models.DecimalField(max_digits=10, decimal_places=2)
    allocated_after = models.DecimalField(max_digits=10, decimal_places=2)
    distributed_after = models.DecimalField(max_digits=10, decimal_places=2)

    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Timestamp'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('User'),
    )

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['item', 'timestamp'], name='wl_move_item_ts_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Movements are immutable. "
                "To correct one, record a new movement in the opposite direction."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Movements are immutable.")

    def __str__(self) -> str:
        return f"{self.kind} {self.quantity} | {self.reason}"
