"""
Movement models — immutable log of stock-affecting events.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import MovementStatus, MovementType


class MovementQuerySet(models.QuerySet):

    def for_company(self, company):
        return self.filter(company=company)

    def touching_sector(self, sector):
        """Movements leaving or entering the sector."""
        return self.filter(
            models.Q(origin_sector=sector) | models.Q(destination_sector=sector)
        )

    def not_cancelled(self):
        return self.exclude(status=MovementStatus.CANCELLED)


class Movement(models.Model):
    """
    Header of a stock-affecting business event.

    LIFECYCLE:

        PENDING ──approve()──► APPROVED ──confirm()──► CONFIRMED
           │                      │
           └──────cancel()────────┴──► CANCELLED

    Position effects are applied when the movement is created; cancel()
    applies the inverse effects. Headers are never created without items.
    """

    company = models.ForeignKey(
        'agrostock.Company',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Empresa'),
    )
    farm = models.ForeignKey(
        'agrostock.Farm',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Fazenda'),
    )
    movement_type = models.CharField(
        max_length=30,
        choices=MovementType.choices,
        verbose_name=_('Tipo'),
    )
    document_number = models.CharField(
        max_length=40,
        verbose_name=_('Número do documento'),
    )
    movement_date = models.DateField(
        default=timezone.localdate,
        db_index=True,
        verbose_name=_('Data da movimentação'),
    )
    origin_sector = models.ForeignKey(
        'agrostock.Sector',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='outgoing_movements',
        verbose_name=_('Setor de origem'),
    )
    destination_sector = models.ForeignKey(
        'agrostock.Sector',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='incoming_movements',
        verbose_name=_('Setor de destino'),
    )
    total_value = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Valor total'),
    )
    status = models.CharField(
        max_length=20,
        choices=MovementStatus.choices,
        default=MovementStatus.PENDING,
        db_index=True,
        verbose_name=_('Status'),
    )
    notes = models.TextField(blank=True, default='', verbose_name=_('Observações'))

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Criado por'),
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Aprovado por'),
    )
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Aprovado em'))
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Confirmado por'),
    )
    confirmed_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Confirmado em'))
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Cancelado por'),
    )
    cancelled_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cancelado em'))
    cancel_reason = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Motivo do cancelamento'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimentação')
        verbose_name_plural = _('Movimentações')
        ordering = ['-movement_date', '-pk']
        constraints = [
            models.UniqueConstraint(
                fields=['company', 'document_number'],
                name='unique_document_number_per_company',
            ),
        ]
        indexes = [
            models.Index(fields=['company', 'movement_date'], name='movement_company_date_idx'),
            models.Index(fields=['company', 'movement_type'], name='movement_company_type_idx'),
        ]

    @property
    def kind(self) -> MovementType:
        return MovementType(self.movement_type)

    def delete(self, *args, **kwargs):
        """Movements are never deleted — cancel them instead."""
        raise ValueError(
            "Movimentações são imutáveis. "
            "Para estornar, cancele a movimentação."
        )

    def __str__(self) -> str:
        return f"{self.document_number} ({self.get_movement_type_display()})"


class MovementItem(models.Model):
    """
    One line of a Movement.

    Rules:
    - Insert once, NEVER update() or delete()
    - Corrections are new movements
    """

    movement = models.ForeignKey(
        Movement,
        on_delete=models.PROTECT,
        related_name='items',
        verbose_name=_('Movimentação'),
    )
    product = models.ForeignKey(
        'agrostock.Product',
        on_delete=models.PROTECT,
        related_name='movement_items',
        verbose_name=_('Produto'),
    )
    lot = models.ForeignKey(
        'agrostock.Lot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movement_items',
        verbose_name=_('Lote'),
    )
    quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Quantidade'),
    )
    unit_value = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Valor unitário'),
    )
    total_value = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name=_('Valor total'),
    )
    cost_basis = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        default=Decimal('0'),
        verbose_name=_('Custo de referência'),
        help_text=_('Custo médio aplicado ao estoque; usado no estorno'),
    )
    notes = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Observações'))

    class Meta:
        verbose_name = _('Item de movimentação')
        verbose_name_plural = _('Itens de movimentação')
        ordering = ['movement', 'pk']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='movement_item_quantity_positive',
            ),
            models.CheckConstraint(
                condition=models.Q(unit_value__gte=0),
                name='movement_item_unit_value_non_negative',
            ),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Itens de movimentação são imutáveis. "
                "Para corrigir, crie uma nova movimentação."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Itens de movimentação são imutáveis.")

    def __str__(self) -> str:
        return f"{self.quantity}x {self.product}"


class DocumentSequence(models.Model):
    """Last document number issued per (company, type code, year)."""

    company = models.ForeignKey(
        'agrostock.Company',
        on_delete=models.CASCADE,
        related_name='+',
    )
    type_code = models.CharField(max_length=10)
    year = models.PositiveIntegerField()
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = _('Sequência de documentos')
        verbose_name_plural = _('Sequências de documentos')
        constraints = [
            models.UniqueConstraint(
                fields=['company', 'type_code', 'year'],
                name='unique_document_sequence',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type_code}-{self.year}: {self.last_number}"
