"""
Enums for Agrostock models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class SectorKind(models.TextChoices):
    """Kind of place where stock sits inside a farm."""
    WAREHOUSE = 'warehouse', _('Armazém')
    SILO = 'silo', _('Silo')
    FIELD = 'field', _('Talhão')
    OTHER = 'other', _('Outro')


class ProductCategory(models.TextChoices):
    """
    Product category.

    INPUT:   Consumed by farm operations (seed, fertilizer, pesticide).
    ASSET:   Durable goods tracked as stock (tools, spare parts).
    PRODUCE: Harvested output (grain, fruit).
    """
    INPUT = 'input', _('Insumo')
    ASSET = 'asset', _('Ativo')
    PRODUCE = 'produce', _('Produção')


class LotStatus(models.TextChoices):
    """Lot lifecycle status."""
    ACTIVE = 'active', _('Ativo')
    CONSUMED = 'consumed', _('Consumido')


class ExpiryStatus(models.TextChoices):
    """Expiry classification of a lot relative to today."""
    NO_EXPIRY = 'SEM_VENCIMENTO', _('Sem vencimento')
    EXPIRED = 'VENCIDO', _('Vencido')
    EXPIRING = 'VENCENDO', _('Vencendo')
    VALID = 'VALIDO', _('Válido')


class StockLevel(models.TextChoices):
    """Position level relative to the product's min/max thresholds."""
    CRITICAL = 'CRITICO', _('Crítico')
    LOW = 'BAIXO', _('Baixo')
    HIGH = 'ALTO', _('Alto')
    NORMAL = 'NORMAL', _('Normal')


class MovementType(models.TextChoices):
    """
    Kind of stock-affecting event.

    Entries add stock at the destination sector, exits remove it from the
    origin sector, transfers do both.
    """
    INBOUND = 'inbound', _('Entrada')
    OUTBOUND = 'outbound', _('Saída')
    TRANSFER = 'transfer', _('Transferência')
    ADJUSTMENT_POSITIVE = 'adjustment_positive', _('Ajuste positivo')
    ADJUSTMENT_NEGATIVE = 'adjustment_negative', _('Ajuste negativo')

    @property
    def code(self) -> str:
        """Document number prefix."""
        return MOVEMENT_TYPE_CODES[self.value]

    @property
    def is_entry(self) -> bool:
        return self in (MovementType.INBOUND, MovementType.ADJUSTMENT_POSITIVE)

    @property
    def is_exit(self) -> bool:
        return self in (MovementType.OUTBOUND, MovementType.ADJUSTMENT_NEGATIVE)


MOVEMENT_TYPE_CODES = {
    MovementType.INBOUND: 'ENT',
    MovementType.OUTBOUND: 'SAI',
    MovementType.TRANSFER: 'TRF',
    MovementType.ADJUSTMENT_POSITIVE: 'AJP',
    MovementType.ADJUSTMENT_NEGATIVE: 'AJN',
}


class MovementStatus(models.TextChoices):
    """Movement lifecycle status."""
    PENDING = 'pending', _('Pendente')       # Created, stock already applied
    APPROVED = 'approved', _('Aprovado')     # Workflow gate passed
    CONFIRMED = 'confirmed', _('Confirmado') # Final
    CANCELLED = 'cancelled', _('Cancelado')  # Stock effects reversed
