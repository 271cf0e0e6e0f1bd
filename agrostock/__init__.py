"""
Django Agrostock — Inventory ledger for multi-farm agricultural companies.

Uso:
    from agrostock import ledger, movements, lots, StockError

    ledger.adjust(empresa, semente, armazem, Decimal('40'), user, 'Recontagem')
    ledger.transfer(empresa, semente, armazem, silo, Decimal('25'), user)
    movements.create_complete(empresa, header, items, user)
    lots.mark_consumed(empresa, lote, user)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from agrostock.services.ledger import StockLedger
        return StockLedger
    elif name == 'movements':
        from agrostock.services.movements import MovementEngine
        return MovementEngine
    elif name == 'lots':
        from agrostock.services.lots import LotTracker
        return LotTracker
    elif name == 'queries':
        from agrostock.services.queries import StockQueries
        return StockQueries
    elif name == 'StockError':
        from agrostock.exceptions import StockError
        return StockError
    elif name == 'StockPosition':
        from agrostock.models.position import StockPosition
        return StockPosition
    elif name == 'Lot':
        from agrostock.models.lot import Lot
        return Lot
    elif name == 'Movement':
        from agrostock.models.movement import Movement
        return Movement
    elif name == 'MovementItem':
        from agrostock.models.movement import MovementItem
        return MovementItem
    elif name == 'MovementType':
        from agrostock.models.enums import MovementType
        return MovementType
    elif name == 'MovementStatus':
        from agrostock.models.enums import MovementStatus
        return MovementStatus
    elif name == 'LotStatus':
        from agrostock.models.enums import LotStatus
        return LotStatus
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'movements',
    'lots',
    'queries',
    'StockError',
    'StockPosition',
    'Lot',
    'Movement',
    'MovementItem',
    'MovementType',
    'MovementStatus',
    'LotStatus',
]

__version__ = '0.1.0'
