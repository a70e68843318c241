"""
Enums for Woodledger models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class WoodQuality(models.TextChoices):
    """Quality grade of a stock batch."""
    PREMIUM = 'Premium', _('Premium')
    STANDARD = 'Standard', _('Standard')
    BASIC = 'Basic', _('Basic')
    DAMAGED = 'Damaged', _('Damaged')


class UnitOfMeasure(models.TextChoices):
    """Unit shared by every pool of one stock item."""
    PIECES = 'pieces', _('Pieces')
    CUBIC_FEET = 'cubic_feet', _('Cubic feet')
    CUBIC_METER = 'cubic_meter', _('Cubic meter')
    BUNDLE = 'bundle', _('Bundle')
    TON = 'ton', _('Ton')


class StockStatus(models.TextChoices):
    """
    Derived availability of a stock item.

    Never set by callers. See woodledger.classify for the rules.
    """
    AVAILABLE = 'Available', _('Available')
    LOW_STOCK = 'LowStock', _('Low stock')
    OUT_OF_STOCK = 'OutOfStock', _('Out of stock')
    RESERVED = 'Reserved', _('Reserved')       # Manual override only
    EXPIRED = 'Expired', _('Expired')


class DistributionStatus(models.TextChoices):
    """Distribution request lifecycle status."""
    PENDING = 'Pending', _('Pending')         # Requested, nothing moved yet
    APPROVED = 'Approved', _('Approved')      # Quantity allocated
    DELIVERED = 'Delivered', _('Delivered')   # Quantity distributed
    CANCELLED = 'Cancelled', _('Cancelled')
    RETURNED = 'Returned', _('Returned')      # Quantity back in available


class Purpose(models.TextChoices):
    """What the member wants the wood for."""
    PERSONAL_USE = 'Personal Use', _('Personal use')
    CONSTRUCTION = 'Construction', _('Construction')
    FUEL = 'Fuel', _('Fuel')
    SALE = 'Sale', _('Sale')
    COMMUNITY_PROJECT = 'Community Project', _('Community project')
    OTHER = 'Other', _('Other')


class PaymentStatus(models.TextChoices):
    PAID = 'Paid', _('Paid')
    UNPAID = 'Unpaid', _('Unpaid')
    PARTIAL = 'Partial', _('Partial')
    NOT_REQUIRED = 'Not Required', _('Not required')


class PaymentMethod(models.TextChoices):
    CASH = 'Cash', _('Cash')
    BANK_TRANSFER = 'Bank Transfer', _('Bank transfer')
    CHEQUE = 'Cheque', _('Cheque')
    WORK_EXCHANGE = 'Work Exchange', _('Work exchange')
    FREE = 'Free', _('Free')


class MoveKind(models.TextChoices):
    """
    Pool transfer applied to a stock item.

    ADD:        -> available
    ALLOCATE:   available -> allocated
    DISTRIBUTE: allocated -> distributed
    RETURN:     distributed -> available
    RELEASE:    allocated -> available (cancelling an approved request)
    """
    ADD = 'add', _('Add')
    ALLOCATE = 'allocate', _('Allocate')
    DISTRIBUTE = 'distribute', _('Distribute')
    RETURN = 'return', _('Return')
    RELEASE = 'release', _('Release')
