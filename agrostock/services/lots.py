"""
Lot tracker — lot creation and numbering, expiry classification, consumption.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from django.db import IntegrityError, transaction
from django.db.models import Count, Max, Min, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from agrostock import expiry
from agrostock.conf import agrostock_settings
from agrostock.exceptions import StockError
from agrostock.models.enums import ExpiryStatus, LotStatus
from agrostock.models.lot import Lot
from agrostock.models.movement import MovementItem
from agrostock.models.position import StockPosition
from agrostock.services.ledger import (
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
    fits_column,
    to_decimal,
)
from agrostock.services.scoping import resolve_company, resolve_lot, resolve_product

logger = logging.getLogger('agrostock')

ZERO = Decimal('0')


class LotTracker:
    """Lot lifecycle methods."""

    @classmethod
    def generate_lot_number(cls, company, product, prefix: str | None = None,
                            offset: int = 0) -> str:
        """
        Lot number like "SOJ-20261019-0007".

        Prefix defaults to the first three characters of the product's
        internal code (or name); the sequence is the product's lot count + 1.
        """
        company = resolve_company(company)
        product = resolve_product(company, product)

        if not prefix:
            source = product.internal_code or product.name
            prefix = source[:3].upper() or 'LOT'

        sequence = Lot.objects.for_product(product).count() + 1 + offset
        today = timezone.localdate().strftime('%Y%m%d')
        return f"{prefix}-{today}-{sequence:04d}"

    @classmethod
    def is_number_unique(cls, product, number: str, exclude_id: int | None = None) -> bool:
        """Is `number` free for this product? Case-insensitive."""
        qs = Lot.objects.filter(
            product_id=getattr(product, 'pk', product),
            lot_number__iexact=number.strip(),
        )
        if exclude_id is not None:
            qs = qs.exclude(pk=exclude_id)
        return not qs.exists()

    @classmethod
    def create_lot(cls, company, product, initial_quantity, lot_number: str | None = None,
                   manufacture_date: date | None = None, expiry_date: date | None = None,
                   supplier: str = '', notes: str = '', prefix: str | None = None) -> Lot:
        """
        Create a lot before stock references it.

        Without `lot_number` one is generated, and regenerated on a
        uniqueness conflict up to MAX_IDENTIFIER_RETRIES.

        Raises:
            StockError('VALIDATION_ERROR'): Bad quantity or dates
            StockError('DUPLICATE_LOT_NUMBER'): Explicit number already used
            StockError('INTEGRITY_CONFLICT'): Retries exhausted
        """
        company = resolve_company(company)
        product = resolve_product(company, product)
        try:
            initial_quantity = to_decimal(initial_quantity)
        except (InvalidOperation, ValueError):
            initial_quantity = None

        errors = {}
        if initial_quantity is None or not initial_quantity.is_finite() or initial_quantity <= 0:
            errors['initial_quantity'] = 'Quantidade inicial deve ser maior que zero'
        elif not fits_column(initial_quantity, QUANTITY_DIGITS, QUANTITY_PLACES):
            errors['initial_quantity'] = (
                'Quantidade aceita até 3 casas decimais e 11 dígitos inteiros'
            )
        if manufacture_date and expiry_date and expiry_date <= manufacture_date:
            errors['expiry_date'] = 'Data de vencimento deve ser posterior à data de fabricação'
        if manufacture_date and manufacture_date > timezone.localdate():
            errors['manufacture_date'] = 'Data de fabricação não pode ser futura'
        if lot_number is not None and not lot_number.strip():
            errors['lot_number'] = 'Número do lote é obrigatório'
        if errors:
            raise StockError('VALIDATION_ERROR', fields=errors)

        fields = {
            'product': product,
            'initial_quantity': initial_quantity,
            'manufacture_date': manufacture_date,
            'expiry_date': expiry_date,
            'supplier': supplier,
            'notes': notes,
        }

        if lot_number:
            lot_number = lot_number.strip()
            if not cls.is_number_unique(product, lot_number):
                raise StockError('DUPLICATE_LOT_NUMBER', lot_number=lot_number)
            try:
                with transaction.atomic():
                    lot = Lot.objects.create(lot_number=lot_number, **fields)
            except IntegrityError:
                raise StockError('DUPLICATE_LOT_NUMBER', lot_number=lot_number) from None
            logger.info("lot.created", extra={"lot_id": lot.pk, "lot_number": lot.lot_number})
            return lot

        attempts = max(1, agrostock_settings.MAX_IDENTIFIER_RETRIES)
        for attempt in range(attempts):
            number = cls.generate_lot_number(company, product, prefix, offset=attempt)
            try:
                with transaction.atomic():
                    lot = Lot.objects.create(lot_number=number, **fields)
            except IntegrityError:
                logger.warning(
                    "lot.number.conflict",
                    extra={"product_id": product.pk, "lot_number": number, "attempt": attempt + 1},
                )
                continue
            logger.info("lot.created", extra={"lot_id": lot.pk, "lot_number": lot.lot_number})
            return lot

        raise StockError('INTEGRITY_CONFLICT', field='lot_number', attempts=attempts)

    @classmethod
    def classify(cls, lot, today: date | None = None) -> ExpiryStatus:
        """SEM_VENCIMENTO | VENCIDO | VENCENDO | VALIDO."""
        return expiry.classify(lot, today)

    @classmethod
    def remaining_quantity(cls, lot) -> Decimal:
        """Σ on-hand across all positions referencing the lot."""
        return StockPosition.objects.filter(lot=lot).aggregate(
            t=Coalesce(Sum('quantity_on_hand'), ZERO)
        )['t']

    @classmethod
    def mark_consumed(cls, company, lot, user=None) -> Lot:
        """
        Flip a lot to CONSUMED once its aggregated on-hand is zero.

        Idempotent: a consumed lot is returned unchanged.

        Raises:
            StockError('LOT_STILL_HAS_STOCK'): If any position still holds stock
        """
        company = resolve_company(company)

        with transaction.atomic():
            lot = resolve_lot(company, lot)
            lot = Lot.objects.select_for_update().get(pk=lot.pk)

            if lot.status == LotStatus.CONSUMED:
                return lot

            remaining = cls.remaining_quantity(lot)
            if remaining != 0:
                raise StockError(
                    'LOT_STILL_HAS_STOCK',
                    lot_id=lot.pk,
                    remaining=remaining,
                )

            lot.status = LotStatus.CONSUMED
            lot.consumed_at = timezone.now()
            lot.consumed_by = user
            lot.save(update_fields=['status', 'consumed_at', 'consumed_by', 'updated_at'])
            logger.info(
                "lot.consumed",
                extra={"lot_id": lot.pk, "user_id": getattr(user, 'pk', None)},
            )
            return lot

    @classmethod
    def statistics(cls, company, lot) -> dict:
        """Consumption figures for a lot."""
        company = resolve_company(company)
        lot = resolve_lot(company, lot)

        current = cls.remaining_quantity(lot)
        consumed = lot.initial_quantity - current
        sectors = (
            StockPosition.objects.filter(lot=lot, quantity_on_hand__gt=0)
            .values('sector').distinct().count()
        )
        moves = MovementItem.objects.filter(lot=lot).aggregate(
            count=Count('movement', distinct=True),
            first=Min('movement__movement_date'),
            last=Max('movement__movement_date'),
        )

        return {
            'initial_quantity': lot.initial_quantity,
            'current_quantity': current,
            'consumed_quantity': consumed,
            'consumed_percent': (consumed / lot.initial_quantity * 100).quantize(Decimal('0.01')),
            'sectors_with_stock': sectors,
            'movement_count': moves['count'],
            'first_movement': moves['first'],
            'last_movement': moves['last'],
            'expiry_status': expiry.classify(lot),
            'days_to_expiry': expiry.days_to_expiry(lot),
        }

    @classmethod
    def stock_by_sector(cls, company, lot):
        """Positions of the lot that still hold stock."""
        company = resolve_company(company)
        lot = resolve_lot(company, lot)
        return (
            StockPosition.objects.filter(lot=lot, quantity_on_hand__gt=0)
            .select_related('sector', 'sector__farm')
            .order_by('sector__name')
        )

    @classmethod
    def history(cls, company, lot, limit: int = 50):
        """Movement items referencing the lot, newest first."""
        company = resolve_company(company)
        lot = resolve_lot(company, lot)
        return (
            MovementItem.objects.filter(lot=lot)
            .select_related(
                'movement', 'movement__origin_sector', 'movement__destination_sector'
            )
            .order_by('-movement__movement_date', '-movement__pk')[:limit]
        )
