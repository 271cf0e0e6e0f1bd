"""
Agrostock Models.

Core models for the inventory ledger:
- Company, Farm, Sector, Product: tenancy rows the ledger scopes against
- StockPosition: on-hand/reserved quantity per (product, sector, lot)
- Lot: traceability with expiry and consumption lifecycle
- Movement, MovementItem: immutable log of stock-affecting events
- DocumentSequence: per company/type/year document numbering
"""

from agrostock.models.enums import (
    ExpiryStatus,
    LotStatus,
    MovementStatus,
    MovementType,
    ProductCategory,
    SectorKind,
    StockLevel,
)
from agrostock.models.lot import Lot
from agrostock.models.movement import DocumentSequence, Movement, MovementItem
from agrostock.models.position import StockPosition
from agrostock.models.tenancy import Company, Farm, Product, Sector

__all__ = [
    'ExpiryStatus',
    'LotStatus',
    'MovementStatus',
    'MovementType',
    'ProductCategory',
    'SectorKind',
    'StockLevel',
    'Company',
    'Farm',
    'Sector',
    'Product',
    'StockPosition',
    'Lot',
    'Movement',
    'MovementItem',
    'DocumentSequence',
]
