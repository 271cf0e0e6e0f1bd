"""
Tenant scoping — every reference re-resolved inside the caller's company.

Callers may pass model instances or primary keys. Either way the row is
fetched again filtered by company, so a foreign key from another tenant is
reported as not found instead of being trusted. A malformed key ('' or
'abc') is reported the same way.
"""

from agrostock.exceptions import StockError
from agrostock.models.lot import Lot
from agrostock.models.movement import Movement
from agrostock.models.tenancy import Company, Farm, Product, Sector


def _pk(ref):
    return getattr(ref, 'pk', ref)


def _first(queryset, code: str, key: str, ref):
    """First row of `queryset`, or StockError(code) when absent or `ref` is malformed."""
    if ref is None or ref == '':
        raise StockError(code, **{key: None})
    try:
        found = queryset.filter(pk=ref).first()
    except (ValueError, TypeError):
        found = None
    if found is None:
        raise StockError(code, **{key: ref})
    return found


def resolve_company(company) -> Company:
    if isinstance(company, Company):
        if not company.is_active:
            raise StockError('COMPANY_NOT_FOUND', company_id=company.pk)
        return company
    return _first(Company.objects.active(), 'COMPANY_NOT_FOUND', 'company_id', company)


def resolve_farm(company, farm) -> Farm:
    return _first(
        Farm.objects.active().filter(company=company),
        'FARM_NOT_FOUND', 'farm_id', _pk(farm),
    )


def resolve_sector(company, sector) -> Sector:
    return _first(
        Sector.objects.active().select_related('farm').filter(farm__company=company),
        'SECTOR_NOT_FOUND', 'sector_id', _pk(sector),
    )


def resolve_product(company, product) -> Product:
    return _first(
        Product.objects.active().filter(company=company),
        'PRODUCT_NOT_FOUND', 'product_id', _pk(product),
    )


def resolve_lot(company, lot, product: Product | None = None) -> Lot | None:
    """Resolve an optional lot; when `product` is given the lot must be its."""
    if lot is None or lot == '':
        return None
    found = _first(
        Lot.objects.filter(product__company=company),
        'LOT_NOT_FOUND', 'lot_id', _pk(lot),
    )
    if product is not None and found.product_id != product.pk:
        raise StockError(
            'LOT_PRODUCT_MISMATCH',
            lot_id=found.pk,
            product_id=product.pk,
        )
    return found


def resolve_movement(company, movement, lock: bool = False) -> Movement:
    qs = Movement.objects.filter(company=company)
    if lock:
        qs = qs.select_for_update()
    return _first(qs, 'MOVEMENT_NOT_FOUND', 'movement_id', _pk(movement))
