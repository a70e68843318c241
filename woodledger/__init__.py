"""
Django Woodledger — wood stock ledger and distribution workflow.

Usage:
    from woodledger import ledger, LedgerError

    item = ledger.intake('Teak', '2x4', 100)
    dist = ledger.request_distribution(member_id, item.pk, 30, actor=actor)
    ledger.approve(dist.pk, actor)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from woodledger.service import Ledger
        return Ledger
    elif name == 'Actor':
        from woodledger.protocols.actor import Actor
        return Actor
    elif name == 'classify':
        from woodledger.classify import classify
        return classify
    elif name in ('LedgerError', 'ValidationError', 'NotFoundError', 'InsufficientStockError',
                  'InvalidTransitionError', 'ConflictError', 'NotAuthorizedError'):
        from woodledger import exceptions
        return getattr(exceptions, name)
    elif name == 'StockItem':
        from woodledger.models.stock_item import StockItem
        return StockItem
    elif name == 'Distribution':
        from woodledger.models.distribution import Distribution
        return Distribution
    elif name == 'Movement':
        from woodledger.models.movement import Movement
        return Movement
    elif name in ('StockStatus', 'DistributionStatus', 'MoveKind', 'Purpose',
                  'PaymentStatus', 'PaymentMethod', 'UnitOfMeasure', 'WoodQuality'):
        from woodledger.models import enums
        return getattr(enums, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'Actor',
    'classify',
    'LedgerError',
    'ValidationError',
    'NotFoundError',
    'InsufficientStockError',
    'InvalidTransitionError',
    'ConflictError',
    'NotAuthorizedError',
    'StockItem',
    'Distribution',
    'Movement',
    'StockStatus',
    'DistributionStatus',
    'MoveKind',
    'Purpose',
    'PaymentStatus',
    'PaymentMethod',
    'UnitOfMeasure',
    'WoodQuality',
]

__version__ = '0.1.0'
