"""
Tenancy models — Company, Farm, Sector, Product.

Minimal records the ledger scopes against. Everything here is owned by the
surrounding CRUD layer; the ledger only reads these rows.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import ProductCategory, SectorKind


class ActiveQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)


class Company(models.Model):
    """Tenant. Every stock record belongs to exactly one company."""

    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    document = models.CharField(
        max_length=20,
        blank=True,
        default='',
        verbose_name=_('CNPJ/CPF'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Ativa'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveQuerySet.as_manager()

    class Meta:
        verbose_name = _('Empresa')
        verbose_name_plural = _('Empresas')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Farm(models.Model):
    """A farm owned by a company."""

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name='farms',
        verbose_name=_('Empresa'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    is_active = models.BooleanField(default=True, verbose_name=_('Ativa'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveQuerySet.as_manager()

    class Meta:
        verbose_name = _('Fazenda')
        verbose_name_plural = _('Fazendas')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Sector(models.Model):
    """
    Where stock exists inside a farm — warehouse, silo, field.

    Examples:
        Sector.objects.create(farm=fazenda, name='Silo 1', kind=SectorKind.SILO,
                              max_capacity=Decimal('5000'), capacity_unit='sc')
    """

    farm = models.ForeignKey(
        Farm,
        on_delete=models.PROTECT,
        related_name='sectors',
        verbose_name=_('Fazenda'),
    )
    name = models.CharField(max_length=100, verbose_name=_('Nome'))
    kind = models.CharField(
        max_length=20,
        choices=SectorKind.choices,
        default=SectorKind.WAREHOUSE,
        verbose_name=_('Tipo'),
    )
    max_capacity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Capacidade máxima'),
    )
    capacity_unit = models.CharField(
        max_length=20,
        blank=True,
        default='',
        verbose_name=_('Unidade de capacidade'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Ativo'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveQuerySet.as_manager()

    class Meta:
        verbose_name = _('Setor')
        verbose_name_plural = _('Setores')
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Product(models.Model):
    """Stockable product of a company (optionally attached to one farm)."""

    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name='products',
        verbose_name=_('Empresa'),
    )
    farm = models.ForeignKey(
        Farm,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='products',
        verbose_name=_('Fazenda'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Nome'))
    internal_code = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Código interno'),
    )
    category = models.CharField(
        max_length=20,
        choices=ProductCategory.choices,
        default=ProductCategory.INPUT,
        verbose_name=_('Categoria'),
    )
    unit = models.CharField(max_length=20, default='un', verbose_name=_('Unidade'))
    minimum_stock = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Estoque mínimo'),
    )
    maximum_stock = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Estoque máximo'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Ativo'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveQuerySet.as_manager()

    class Meta:
        verbose_name = _('Produto')
        verbose_name_plural = _('Produtos')
        ordering = ['name']
        indexes = [
            models.Index(fields=['company', 'category'], name='product_company_category_idx'),
        ]

    def __str__(self) -> str:
        return self.name
