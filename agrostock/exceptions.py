"""
Exceptions for Agrostock.

All errors are StockError with a structured code for programmatic handling.
The `kind` of an error groups codes into the categories callers translate
into transport responses (validation, insufficient_stock, not_found,
invalid_state, integrity_conflict).
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Exception carrying a stable code, a readable message and context data.

    Subclasses provide `_default_messages` so callers can raise with the
    code alone:

        raise StockError('INSUFFICIENT_STOCK', available=10, requested=20)
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, data={self.data!r})"


VALIDATION = 'validation'
INSUFFICIENT_STOCK = 'insufficient_stock'
NOT_FOUND = 'not_found'
INVALID_STATE = 'invalid_state'
INTEGRITY_CONFLICT = 'integrity_conflict'


class StockError(BaseError):
    """
    Structured exception for ledger, movement and lot operations.

    Usage:
        try:
            ledger.transfer(company, soja, silo_1, silo_2, Decimal('1000'))
        except StockError as e:
            if e.kind == 'insufficient_stock':
                print(f"Só tem {e.available} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'VALIDATION_ERROR': 'Dados inválidos',
        'INVALID_QUANTITY': 'Quantidade inválida',
        'INVALID_COST': 'Valor unitário inválido (não pode ser negativo)',
        'QUANTITY_BELOW_RESERVED': 'Quantidade abaixo do total reservado',
        'RELEASE_EXCEEDS_RESERVED': 'Liberação maior que a quantidade reservada',
        'SAME_SECTOR': 'Setor de origem e destino devem ser diferentes',
        'LOT_PRODUCT_MISMATCH': 'Lote não pertence ao produto informado',
        'LOT_CAPACITY_EXCEEDED': 'Quantidade excede a quantidade inicial do lote',
        'INSUFFICIENT_STOCK': 'Estoque insuficiente',
        'PRODUCT_NOT_FOUND': 'Produto não encontrado',
        'SECTOR_NOT_FOUND': 'Setor não encontrado',
        'FARM_NOT_FOUND': 'Fazenda não encontrada',
        'LOT_NOT_FOUND': 'Lote não encontrado',
        'MOVEMENT_NOT_FOUND': 'Movimentação não encontrada',
        'COMPANY_NOT_FOUND': 'Empresa não encontrada',
        'INVALID_STATUS': 'Status inválido para esta operação',
        'SELF_APPROVAL': 'Não é possível aprovar a própria movimentação',
        'LOT_STILL_HAS_STOCK': 'Lote ainda possui estoque',
        'DUPLICATE_LOT_NUMBER': 'Número de lote já existe para este produto',
        'DUPLICATE_DOCUMENT': 'Número de documento já existe',
        'INTEGRITY_CONFLICT': 'Conflito de integridade ao gravar',
    }

    _kinds = {
        'VALIDATION_ERROR': VALIDATION,
        'INVALID_QUANTITY': VALIDATION,
        'INVALID_COST': VALIDATION,
        'QUANTITY_BELOW_RESERVED': VALIDATION,
        'RELEASE_EXCEEDS_RESERVED': VALIDATION,
        'SAME_SECTOR': VALIDATION,
        'LOT_PRODUCT_MISMATCH': VALIDATION,
        'LOT_CAPACITY_EXCEEDED': VALIDATION,
        'INSUFFICIENT_STOCK': INSUFFICIENT_STOCK,
        'PRODUCT_NOT_FOUND': NOT_FOUND,
        'SECTOR_NOT_FOUND': NOT_FOUND,
        'FARM_NOT_FOUND': NOT_FOUND,
        'LOT_NOT_FOUND': NOT_FOUND,
        'MOVEMENT_NOT_FOUND': NOT_FOUND,
        'COMPANY_NOT_FOUND': NOT_FOUND,
        'INVALID_STATUS': INVALID_STATE,
        'SELF_APPROVAL': INVALID_STATE,
        'LOT_STILL_HAS_STOCK': INVALID_STATE,
        'DUPLICATE_LOT_NUMBER': INTEGRITY_CONFLICT,
        'DUPLICATE_DOCUMENT': INTEGRITY_CONFLICT,
        'INTEGRITY_CONFLICT': INTEGRITY_CONFLICT,
    }

    @property
    def kind(self) -> str:
        """Error category (validation, insufficient_stock, ...)."""
        return self._kinds.get(self.code, VALIDATION)

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))

    @property
    def fields(self) -> dict[str, str]:
        """Offending fields of a VALIDATION_ERROR."""
        return self.data.get('fields', {})

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'kind': self.kind,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
