"""
StockPosition model — on-hand and reserved quantity at (product, sector, lot).
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _


def lot_filter(lot, prefix: str = '') -> Q:
    """
    Predicate matching a lot coordinate.

    `lot=None` means untracked/bulk stock and must match `lot IS NULL`, not
    "any lot".
    """
    if lot is None:
        return Q(**{f'{prefix}lot__isnull': True})
    lot_id = lot if isinstance(lot, int) else lot.pk
    return Q(**{f'{prefix}lot_id': lot_id})


class StockPositionQuerySet(models.QuerySet):
    """QuerySet with helper filters for positions."""

    def for_company(self, company):
        return self.filter(product__company=company)

    def for_product(self, product):
        return self.filter(product=product)

    def in_sector(self, sector):
        return self.filter(sector=sector)

    def at(self, product, sector, lot=None):
        """Filter the single position at a coordinate."""
        return self.filter(lot_filter(lot), product=product, sector=sector)

    def with_stock(self):
        return self.filter(quantity_on_hand__gt=0)

    def with_available(self, quantity: Decimal = Decimal('0')):
        """Positions whose available quantity is at least `quantity`."""
        return self.filter(quantity_on_hand__gte=F('quantity_reserved') + quantity)


class StockPosition(models.Model):
    """
    Stock balance of a product in a sector, optionally per lot.

    Rules:
    - Mutated only by StockLedger
    - Never deleted; zero-quantity rows persist as history
    - quantity_reserved <= quantity_on_hand (enforced in DB too)
    """

    product = models.ForeignKey(
        'agrostock.Product',
        on_delete=models.PROTECT,
        related_name='positions',
        verbose_name=_('Produto'),
    )
    sector = models.ForeignKey(
        'agrostock.Sector',
        on_delete=models.PROTECT,
        related_name='positions',
        verbose_name=_('Setor'),
    )
    lot = models.ForeignKey(
        'agrostock.Lot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='positions',
        verbose_name=_('Lote'),
        help_text=_('Vazio = estoque sem rastreio de lote'),
    )

    quantity_on_hand = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade atual'),
    )
    quantity_reserved = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Quantidade reservada'),
    )
    average_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Custo médio unitário'),
    )
    last_movement_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Última movimentação'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StockPositionQuerySet.as_manager()

    class Meta:
        verbose_name = _('Posição de estoque')
        verbose_name_plural = _('Posições de estoque')
        ordering = ['product', 'sector', 'lot']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'sector', 'lot'],
                name='unique_position_with_lot',
            ),
            # NULLs are distinct in unique indexes; bulk stock needs its own
            models.UniqueConstraint(
                fields=['product', 'sector'],
                condition=Q(lot__isnull=True),
                name='unique_position_without_lot',
            ),
            models.CheckConstraint(
                condition=Q(quantity_on_hand__gte=0),
                name='position_on_hand_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__gte=0),
                name='position_reserved_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(quantity_reserved__lte=F('quantity_on_hand')),
                name='position_reserved_within_on_hand',
            ),
            models.CheckConstraint(
                condition=Q(average_cost__gte=0),
                name='position_cost_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'sector'], name='position_product_sector_idx'),
            models.Index(fields=['sector', 'quantity_on_hand'], name='position_sector_on_hand_idx'),
        ]

    @property
    def quantity_available(self) -> Decimal:
        """On-hand minus reserved."""
        return self.quantity_on_hand - self.quantity_reserved

    @property
    def total_value(self) -> Decimal:
        return self.quantity_on_hand * self.average_cost

    def __str__(self) -> str:
        lot = f" #{self.lot.lot_number}" if self.lot_id else ""
        return f"{self.product} [{self.sector}{lot}]: {self.quantity_on_hand}"
