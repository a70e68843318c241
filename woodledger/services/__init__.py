"""
Ledger services — modular organization of ledger operations.

    from woodledger.services import StockRegistry, StockQueries, DistributionWorkflow, DistributionQueries
"""

from woodledger.services.queries import DistributionQueries, StockQueries
from woodledger.services.registry import StockRegistry
from woodledger.services.workflow import TRANSITIONS, DistributionWorkflow

__all__ = [
    'StockRegistry',
    'StockQueries',
    'DistributionWorkflow',
    'DistributionQueries',
    'TRANSITIONS',
]
