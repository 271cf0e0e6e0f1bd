"""
Stock services — modular organization of ledger operations.

    from agrostock.services import StockLedger, MovementEngine, LotTracker, StockQueries
"""

from agrostock.services.ledger import StockLedger
from agrostock.services.lots import LotTracker
from agrostock.services.movements import MovementEngine
from agrostock.services.queries import StockQueries

__all__ = [
    'StockLedger',
    'MovementEngine',
    'LotTracker',
    'StockQueries',
]
