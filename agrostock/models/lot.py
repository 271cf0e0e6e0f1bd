"""
Lot model — traceability for perishable or serialized product.

Usage:
    lot = lots.create_lot(
        company, semente, Decimal('200'),
        manufacture_date=date(2026, 3, 1),
        expiry_date=date(2027, 3, 1),
        supplier='Cooperativa Sul',
    )

    movements.create_complete(company, {..., 'movement_type': 'inbound'},
                              [{'product': semente, 'lot': lot, 'quantity': 200}])
"""

from django.conf import settings
from django.db import models
from django.db.models.functions import Lower
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import LotStatus


class LotQuerySet(models.QuerySet):
    """Custom QuerySet for Lot with convenience filters."""

    def for_company(self, company):
        return self.filter(product__company=company)

    def for_product(self, product):
        return self.filter(product=product)

    def active(self):
        return self.filter(status=LotStatus.ACTIVE)

    def with_stock(self):
        """Lots with at least one non-empty position."""
        return self.filter(positions__quantity_on_hand__gt=0).distinct()

    def expiring_before(self, date):
        """Lots expiring on or before the given date."""
        return self.filter(expiry_date__lte=date, expiry_date__isnull=False)

    def fefo(self):
        """First-expired, first-out ordering (lots without expiry last)."""
        return self.order_by(
            models.F('expiry_date').asc(nulls_last=True), 'created_at', 'pk'
        )


class Lot(models.Model):
    """
    Lot of a product with its own expiry and consumption lifecycle.

    Rules:
    - lot_number unique per product, case-insensitive
    - Σ on-hand of positions referencing the lot <= initial_quantity
    - Becomes CONSUMED only when its aggregated on-hand is zero
    - Never deleted while referenced (PROTECT from positions and items)
    """

    product = models.ForeignKey(
        'agrostock.Product',
        on_delete=models.PROTECT,
        related_name='lots',
        verbose_name=_('Produto'),
    )
    lot_number = models.CharField(
        max_length=50,
        verbose_name=_('Número do lote'),
    )

    manufacture_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Data de fabricação'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Data de vencimento'),
    )
    initial_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Quantidade inicial'),
    )

    status = models.CharField(
        max_length=20,
        choices=LotStatus.choices,
        default=LotStatus.ACTIVE,
        db_index=True,
        verbose_name=_('Status'),
    )
    consumed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Consumido em'))
    consumed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Consumido por'),
    )

    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Fornecedor'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Criado em'))
    updated_at = models.DateTimeField(auto_now=True)

    objects = LotQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['expiry_date', 'lot_number']
        constraints = [
            models.UniqueConstraint(
                Lower('lot_number'), 'product',
                name='unique_lot_number_per_product_ci',
            ),
            models.CheckConstraint(
                condition=models.Q(initial_quantity__gt=0),
                name='lot_initial_quantity_positive',
            ),
        ]

    @property
    def is_consumed(self) -> bool:
        return self.status == LotStatus.CONSUMED

    def __str__(self) -> str:
        expiry = f" (val:{self.expiry_date})" if self.expiry_date else ""
        return f"Lote {self.lot_number}{expiry}"
