"""
Woodledger Models.

Core models for the wood stock ledger:
- StockItem: One wood batch and its three quantity pools
- Distribution: A member's request against one StockItem
- Movement: Immutable audit trail of pool transfers
"""

from woodledger.models.distribution import Distribution
from woodledger.models.enums import (
    DistributionStatus,
    MoveKind,
    PaymentMethod,
    PaymentStatus,
    Purpose,
    StockStatus,
    UnitOfMeasure,
    WoodQuality,
)
from woodledger.models.movement import Movement
from woodledger.models.stock_item import StockItem

__all__ = [
    'WoodQuality',
    'UnitOfMeasure',
    'StockStatus',
    'DistributionStatus',
    'Purpose',
    'PaymentStatus',
    'PaymentMethod',
    'MoveKind',
    'StockItem',
    'Distribution',
    'Movement',
]
