"""
Stock queries — read-only operations.

No locking: results are advisory and may not reflect a single snapshot
across rows unless the caller wraps them in a transaction.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from agrostock import expiry
from agrostock.conf import agrostock_settings
from agrostock.exceptions import StockError
from agrostock.models.enums import MovementStatus, StockLevel
from agrostock.models.lot import Lot
from agrostock.models.movement import MovementItem
from agrostock.models.position import StockPosition, lot_filter
from agrostock.models.tenancy import Farm, Product, Sector
from agrostock.services.ledger import to_quantity
from agrostock.services.scoping import (
    resolve_company,
    resolve_farm,
    resolve_lot,
    resolve_product,
    resolve_sector,
)

logger = logging.getLogger('agrostock')

ZERO = Decimal('0')

VALUE = ExpressionWrapper(
    F('quantity_on_hand') * F('average_cost'),
    output_field=DecimalField(max_digits=20, decimal_places=4),
)


def _sum(expression, filter=None):
    return Coalesce(Sum(expression, filter=filter), ZERO,
                    output_field=DecimalField(max_digits=20, decimal_places=4))


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def get_position(cls, company, product, sector, lot=None) -> StockPosition | None:
        """Get specific position by coordinates."""
        company = resolve_company(company)
        product = resolve_product(company, product)
        sector = resolve_sector(company, sector)
        lot = resolve_lot(company, lot, product)
        return StockPosition.objects.at(product, sector, lot).first()

    @classmethod
    def list_positions(cls, company, farm=None, sector=None, product=None,
                       category: str | None = None, only_with_stock: bool = True):
        """List positions with filters."""
        company = resolve_company(company)
        qs = (
            StockPosition.objects.for_company(company)
            .filter(product__is_active=True)
            .select_related('product', 'sector', 'sector__farm', 'lot')
        )

        if farm is not None:
            qs = qs.filter(sector__farm=resolve_farm(company, farm))
        if sector is not None:
            qs = qs.in_sector(resolve_sector(company, sector))
        if product is not None:
            qs = qs.for_product(resolve_product(company, product))
        if category:
            qs = qs.filter(product__category=category)
        if only_with_stock:
            qs = qs.with_stock()

        return qs.order_by('product__name', 'sector__name')

    @classmethod
    def stock_status(cls, position: StockPosition) -> StockLevel:
        """
        Level of a position against its product thresholds.

        CRITICO <= minimum < BAIXO <= 1.5 × minimum; ALTO >= maximum.
        """
        product = position.product
        quantity = position.quantity_on_hand
        minimum = product.minimum_stock
        maximum = product.maximum_stock

        if minimum is not None and quantity <= minimum:
            return StockLevel.CRITICAL
        if minimum is not None and quantity <= minimum * Decimal('1.5'):
            return StockLevel.LOW
        if maximum is not None and quantity >= maximum:
            return StockLevel.HIGH
        return StockLevel.NORMAL

    @classmethod
    def low_stock(cls, company, limit: int = 20) -> list[dict]:
        """
        Products whose total on-hand is at or below their minimum.

        Sorted by percentage of minimum (lowest first).
        """
        company = resolve_company(company)
        products = (
            Product.objects.active()
            .filter(
                company=company,
                category__in=agrostock_settings.LOW_STOCK_CATEGORIES,
                minimum_stock__isnull=False,
            )
            .annotate(
                on_hand=_sum('positions__quantity_on_hand'),
                locations=Count('positions', filter=Q(positions__quantity_on_hand__gt=0)),
            )
            .filter(on_hand__lte=F('minimum_stock'))
        )

        report = []
        for product in products:
            percent = (
                (product.on_hand / product.minimum_stock * 100).quantize(Decimal('0.01'))
                if product.minimum_stock else ZERO
            )
            report.append({
                'product': product,
                'on_hand': product.on_hand,
                'minimum_stock': product.minimum_stock,
                'locations': product.locations,
                'percent_of_minimum': percent,
            })
            logger.warning(
                "stock.low_stock.detected",
                extra={
                    "company_id": company.pk,
                    "product_id": product.pk,
                    "on_hand": str(product.on_hand),
                    "minimum_stock": str(product.minimum_stock),
                },
            )

        report.sort(key=lambda row: row['percent_of_minimum'])
        return report[:limit]

    @classmethod
    def out_of_stock(cls, company):
        """Active products of the low stock categories with zero on-hand."""
        company = resolve_company(company)
        return (
            Product.objects.active()
            .filter(company=company, category__in=agrostock_settings.LOW_STOCK_CATEGORIES)
            .annotate(on_hand=_sum('positions__quantity_on_hand'))
            .filter(on_hand=0)
            .order_by('name')
        )

    @classmethod
    def expiring_lots(cls, company, days: int | None = None):
        """Lots with stock expiring within `days` (not yet expired), FEFO order."""
        company = resolve_company(company)
        days = agrostock_settings.EXPIRY_WARNING_DAYS if days is None else days
        return (
            Lot.objects.for_company(company)
            .filter(expiry.expiring_filter(days), product__is_active=True)
            .annotate(on_hand=_sum('positions__quantity_on_hand'))
            .filter(on_hand__gt=0)
            .select_related('product')
            .fefo()
        )

    @classmethod
    def expired_lots_with_stock(cls, company):
        """Lots past expiry that still hold stock."""
        company = resolve_company(company)
        return (
            Lot.objects.for_company(company)
            .filter(expiry.expired_filter(), product__is_active=True)
            .annotate(on_hand=_sum('positions__quantity_on_hand'))
            .filter(on_hand__gt=0)
            .select_related('product')
            .fefo()
        )

    @classmethod
    def fefo_positions(cls, company, product, sector=None):
        """
        Positions with available stock in first-expired, first-out order.

        Lots without expiry, then untracked stock, come last.
        """
        company = resolve_company(company)
        product = resolve_product(company, product)
        qs = StockPosition.objects.for_product(product).filter(
            quantity_on_hand__gt=F('quantity_reserved')
        )
        if sector is not None:
            qs = qs.in_sector(resolve_sector(company, sector))
        return qs.select_related('lot', 'sector').order_by(
            F('lot__expiry_date').asc(nulls_last=True),
            F('lot__created_at').asc(nulls_last=True),
            'pk',
        )

    @classmethod
    def sector_summary(cls, company, farm=None) -> list[dict]:
        """Per-sector totals: products, positions, quantity, value, occupancy."""
        company = resolve_company(company)
        sectors = Sector.objects.active().filter(farm__company=company)
        if farm is not None:
            sectors = sectors.filter(farm=resolve_farm(company, farm))

        in_stock = Q(positions__quantity_on_hand__gt=0)
        sectors = sectors.select_related('farm').annotate(
            product_count=Count('positions__product', filter=in_stock, distinct=True),
            position_count=Count('positions', filter=in_stock),
            total_quantity=_sum('positions__quantity_on_hand'),
            total_value=_sum(
                F('positions__quantity_on_hand') * F('positions__average_cost')
            ),
        ).order_by('farm__name', 'name')

        summary = []
        for sector in sectors:
            occupancy = None
            if sector.max_capacity:
                occupancy = (sector.total_quantity / sector.max_capacity * 100).quantize(
                    Decimal('0.01')
                )
            summary.append({
                'sector': sector,
                'product_count': sector.product_count,
                'position_count': sector.position_count,
                'total_quantity': sector.total_quantity,
                'total_value': sector.total_value,
                'occupancy_percent': occupancy,
            })
        return summary

    @classmethod
    def farm_summary(cls, company) -> list[dict]:
        """Per-farm totals: products, positions, value, low stock positions."""
        company = resolve_company(company)
        in_stock = Q(sectors__positions__quantity_on_hand__gt=0)
        farms = (
            Farm.objects.active()
            .filter(company=company)
            .annotate(
                product_count=Count(
                    'sectors__positions__product', filter=in_stock, distinct=True
                ),
                position_count=Count('sectors__positions', filter=in_stock),
                total_value=_sum(
                    F('sectors__positions__quantity_on_hand')
                    * F('sectors__positions__average_cost')
                ),
                low_stock_positions=Count(
                    'sectors__positions',
                    filter=Q(
                        sectors__positions__product__minimum_stock__isnull=False,
                        sectors__positions__quantity_on_hand__lte=F(
                            'sectors__positions__product__minimum_stock'
                        ),
                    ),
                ),
            )
            .order_by('name')
        )
        return [
            {
                'farm': farm,
                'product_count': farm.product_count,
                'position_count': farm.position_count,
                'total_value': farm.total_value,
                'low_stock_positions': farm.low_stock_positions,
            }
            for farm in farms
        ]

    @classmethod
    def statistics(cls, company) -> dict:
        """Company-wide stock figures."""
        company = resolve_company(company)
        qs = StockPosition.objects.for_company(company).filter(product__is_active=True)
        totals = qs.aggregate(
            positions=Count('pk'),
            products_with_stock=Count(
                'product', filter=Q(quantity_on_hand__gt=0), distinct=True
            ),
            total_quantity=_sum('quantity_on_hand'),
            total_value=_sum(VALUE),
            empty_positions=Count('pk', filter=Q(quantity_on_hand=0)),
        )
        return totals

    # ══════════════════════════════════════════════════════════════
    # POSITION DETAIL & ACTIVITY
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def position_history(cls, company, product, sector, lot=None, limit: int = 50):
        """
        Movement items that touched one position, newest first.

        `lot=None` selects untracked stock only (items without a lot).
        """
        company = resolve_company(company)
        product = resolve_product(company, product)
        sector = resolve_sector(company, sector)
        lot = resolve_lot(company, lot, product)
        return (
            MovementItem.objects.filter(
                lot_filter(lot),
                Q(movement__origin_sector=sector) | Q(movement__destination_sector=sector),
                product=product,
                movement__company=company,
            )
            .select_related(
                'movement', 'movement__origin_sector', 'movement__destination_sector',
                'movement__created_by',
            )
            .order_by('-movement__movement_date', '-movement__pk')[:limit]
        )

    @classmethod
    def check_availability(cls, company, product, sector, quantity, lot=None) -> dict:
        """
        Whether a position can serve `quantity` right now.

        A missing position reports zeros and `sufficient=False`.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity is malformed or negative
        """
        quantity = to_quantity(quantity)
        if quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        position = cls.get_position(company, product, sector, lot)
        if position is None:
            on_hand = reserved = available = ZERO
        else:
            on_hand = position.quantity_on_hand
            reserved = position.quantity_reserved
            available = position.quantity_available
        return {
            'position': position,
            'on_hand': on_hand,
            'reserved': reserved,
            'available': available,
            'requested': quantity,
            'sufficient': position is not None and available >= quantity,
        }

    @classmethod
    def idle_positions(cls, company, days: int = 90, limit: int = 50):
        """
        Positions holding stock with no movement for `days` days.

        Never-moved positions come first, then the oldest activity.
        """
        company = resolve_company(company)
        cutoff = timezone.now() - timedelta(days=days)
        return (
            StockPosition.objects.for_company(company)
            .with_stock()
            .filter(
                Q(last_movement_at__isnull=True) | Q(last_movement_at__lte=cutoff),
                product__is_active=True,
            )
            .select_related('product', 'sector', 'sector__farm', 'lot')
            .order_by(F('last_movement_at').asc(nulls_first=True), 'pk')[:limit]
        )

    @classmethod
    def most_moved_products(cls, company, date_from: date | None = None,
                            date_to: date | None = None, limit: int = 10) -> list[dict]:
        """
        Products ranked by how many movements carried them in a period.

        Cancelled movements are ignored. The period defaults to the last
        30 days.
        """
        company = resolve_company(company)
        date_to = date_to or timezone.localdate()
        date_from = date_from or date_to - timedelta(days=30)
        rows = (
            MovementItem.objects.filter(
                movement__company=company,
                movement__movement_date__range=(date_from, date_to),
            )
            .exclude(movement__status=MovementStatus.CANCELLED)
            .values('product', 'product__name', 'product__internal_code')
            .annotate(
                movement_count=Count('movement', distinct=True),
                total_quantity=_sum('quantity'),
                total_value=_sum('total_value'),
            )
            .order_by('-movement_count', '-total_quantity', 'product__name')[:limit]
        )
        return [
            {
                'product_id': row['product'],
                'name': row['product__name'],
                'internal_code': row['product__internal_code'],
                'movement_count': row['movement_count'],
                'total_quantity': row['total_quantity'],
                'total_value': row['total_value'],
            }
            for row in rows
        ]
