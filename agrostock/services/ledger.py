"""
Stock ledger — the only writer of StockPosition rows.

Public operations (adjust, reserve, release, transfer) re-resolve every
reference inside the caller's company and run under transaction.atomic(),
joining the caller's transaction when there is one.

The primitives (receive_into, issue_from, move_between) take already
resolved rows and are meant to be composed inside a transaction opened by
the caller (MovementEngine).
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from agrostock.conf import agrostock_settings
from agrostock.exceptions import StockError
from agrostock.models.enums import LotStatus, MovementType
from agrostock.models.lot import Lot
from agrostock.models.position import StockPosition
from agrostock.services import journal
from agrostock.services.scoping import (
    resolve_company,
    resolve_lot,
    resolve_product,
    resolve_sector,
)

logger = logging.getLogger('agrostock')

ZERO = Decimal('0')

QUANTITY_DIGITS, QUANTITY_PLACES = 14, 3
COST_DIGITS, COST_PLACES = 14, 4


@dataclass(frozen=True)
class AdjustmentResult:
    previous: Decimal
    new: Decimal
    delta: Decimal
    position: StockPosition | None
    movement: object | None


@dataclass(frozen=True)
class TransferResult:
    movement: object
    quantity: Decimal

    @property
    def movement_id(self) -> int:
        return self.movement.pk


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def fits_column(value: Decimal, max_digits: int, decimal_places: int) -> bool:
    """
    True when `value` is stored by DecimalField(max_digits, decimal_places)
    without rounding or overflow.
    """
    if not value.is_finite():
        return False
    normalized = value.normalize()
    if normalized.as_tuple().exponent < -decimal_places:
        return False
    integer_digits = max(normalized.adjusted() + 1, 1)
    return integer_digits <= max_digits - decimal_places


def to_quantity(value) -> Decimal:
    """
    Parse a quantity for the (14, 3) quantity columns.

    Raises:
        StockError('INVALID_QUANTITY'): Not a number, more than 3 decimal
            places or more than 11 integer digits
    """
    try:
        quantity = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise StockError('INVALID_QUANTITY', requested=value) from None
    if not fits_column(quantity, QUANTITY_DIGITS, QUANTITY_PLACES):
        raise StockError('INVALID_QUANTITY', requested=quantity)
    return quantity


def to_cost(value) -> Decimal:
    """
    Parse a unit cost for the (14, 4) cost columns.

    Raises:
        StockError('INVALID_COST'): Not a number, more than 4 decimal
            places or more than 10 integer digits
    """
    try:
        cost = to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        raise StockError('INVALID_COST', unit_cost=value) from None
    if not fits_column(cost, COST_DIGITS, COST_PLACES):
        raise StockError('INVALID_COST', unit_cost=cost)
    return cost


def weighted_average(q0: Decimal, c0: Decimal, q: Decimal, c: Decimal) -> Decimal:
    """
    Weighted average unit cost after Q units at cost C join Q0 units at C0.

        (Q0×C0 + Q×C) / (Q0+Q)
    """
    places = Decimal(1).scaleb(-agrostock_settings.COST_DECIMAL_PLACES)
    if q0 <= 0:
        return c.quantize(places, rounding=ROUND_HALF_UP)
    result = (q0 * c0 + q * c) / (q0 + q)
    return result.quantize(places, rounding=ROUND_HALF_UP)


class StockLedger:
    """Mutation API over the position store."""

    # ══════════════════════════════════════════════════════════════
    # PUBLIC OPERATIONS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def adjust(cls, company, product, sector, new_quantity, user=None,
               reason: str = '', lot=None, unit_cost=None) -> AdjustmentResult:
        """
        Inventory adjustment — set on-hand to an absolute value.

        delta = new_quantity - current on-hand. A non-zero delta is recorded
        as a confirmed adjustment_positive/adjustment_negative movement.

        Raises:
            StockError('INVALID_QUANTITY'): If new_quantity < 0 or has more
                precision or digits than the quantity columns hold
            StockError('QUANTITY_BELOW_RESERVED'): If new_quantity < reserved
            StockError('LOT_CAPACITY_EXCEEDED'): If the lot cap would break
        """
        new_quantity = to_quantity(new_quantity)
        if new_quantity < 0:
            raise StockError('INVALID_QUANTITY', requested=new_quantity)
        if unit_cost is not None:
            unit_cost = to_cost(unit_cost)
            if unit_cost < 0:
                raise StockError('INVALID_COST', unit_cost=unit_cost)

        company = resolve_company(company)
        product = resolve_product(company, product)
        sector = resolve_sector(company, sector)
        lot = resolve_lot(company, lot, product)
        reason = reason or 'Ajuste manual de estoque'

        with transaction.atomic():
            position = cls._locked_position(product, sector, lot)
            previous = position.quantity_on_hand if position else ZERO
            delta = new_quantity - previous

            if delta == 0:
                return AdjustmentResult(previous, new_quantity, ZERO, position, None)

            if position and new_quantity < position.quantity_reserved:
                raise StockError(
                    'QUANTITY_BELOW_RESERVED',
                    reserved=position.quantity_reserved,
                    requested=new_quantity,
                )

            if delta > 0:
                cost = unit_cost
                if cost is None:
                    cost = position.average_cost if position else ZERO
                position = cls.receive_into(product, sector, delta, cost, lot)
                movement_type = MovementType.ADJUSTMENT_POSITIVE
                origin, destination = None, sector
            else:
                position = cls.issue_from(product, sector, -delta, lot)
                movement_type = MovementType.ADJUSTMENT_NEGATIVE
                origin, destination = sector, None

            movement = journal.record(
                company,
                sector.farm,
                movement_type,
                [journal.JournalLine(
                    product=product,
                    lot=lot,
                    quantity=abs(delta),
                    unit_value=position.average_cost,
                )],
                origin_sector=origin,
                destination_sector=destination,
                user=user,
                notes=reason,
            )

            logger.info(
                "stock.adjust",
                extra={
                    "position_id": position.pk,
                    "previous": str(previous),
                    "new": str(new_quantity),
                    "delta": str(delta),
                    "movement": movement.document_number,
                    "reason": reason,
                },
            )
            return AdjustmentResult(previous, new_quantity, delta, position, movement)

    @classmethod
    def reserve(cls, company, product, sector, quantity, lot=None) -> StockPosition | None:
        """
        Reserve quantity on a position.

        The increment is a single conditional UPDATE guarded by
        `on_hand >= reserved + quantity`, so two concurrent reservations can
        never both consume the same margin.

        Returns:
            The updated position, or None when availability is insufficient
            (or the position does not exist).

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
        """
        quantity = to_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        company = resolve_company(company)
        product = resolve_product(company, product)
        sector = resolve_sector(company, sector)
        lot = resolve_lot(company, lot, product)

        with transaction.atomic():
            updated = (
                StockPosition.objects.at(product, sector, lot)
                .with_available(quantity)
                .update(
                    quantity_reserved=F('quantity_reserved') + quantity,
                    updated_at=timezone.now(),
                )
            )
            if not updated:
                logger.warning(
                    "stock.reserve.rejected",
                    extra={
                        "product_id": product.pk,
                        "sector_id": sector.pk,
                        "lot_id": lot.pk if lot else None,
                        "qty": str(quantity),
                    },
                )
                return None

            position = StockPosition.objects.at(product, sector, lot).get()
            logger.info(
                "stock.reserve",
                extra={"position_id": position.pk, "qty": str(quantity)},
            )
            return position

    @classmethod
    def release(cls, company, product, sector, quantity, lot=None) -> StockPosition | None:
        """
        Release a reservation.

        Forgiving by default: releasing more than reserved clamps reserved
        at zero. With STRICT_RELEASE it raises instead.

        Returns:
            The updated position, or None when the position does not exist.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
            StockError('RELEASE_EXCEEDS_RESERVED'): Strict mode only
        """
        quantity = to_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        company = resolve_company(company)
        product = resolve_product(company, product)
        sector = resolve_sector(company, sector)
        lot = resolve_lot(company, lot, product)

        with transaction.atomic():
            position = cls._locked_position(product, sector, lot)
            if position is None:
                return None

            if quantity > position.quantity_reserved:
                if agrostock_settings.STRICT_RELEASE:
                    raise StockError(
                        'RELEASE_EXCEEDS_RESERVED',
                        reserved=position.quantity_reserved,
                        requested=quantity,
                    )
                logger.warning(
                    "stock.release.clamped",
                    extra={
                        "position_id": position.pk,
                        "reserved": str(position.quantity_reserved),
                        "qty": str(quantity),
                    },
                )

            position.quantity_reserved = max(ZERO, position.quantity_reserved - quantity)
            position.save(update_fields=['quantity_reserved', 'updated_at'])
            logger.info(
                "stock.release",
                extra={"position_id": position.pk, "qty": str(quantity)},
            )
            return position

    @classmethod
    def transfer(cls, company, product, origin, destination, quantity,
                 user=None, lot=None, reason: str = '') -> TransferResult:
        """
        Move on-hand stock between two sectors of the company.

        Origin's average cost travels with the goods. A confirmed transfer
        movement with a single item is recorded.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
            StockError('SAME_SECTOR'): If origin == destination
            StockError('INSUFFICIENT_STOCK'): If origin available < quantity
        """
        quantity = to_quantity(quantity)
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        company = resolve_company(company)
        product = resolve_product(company, product)
        origin = resolve_sector(company, origin)
        destination = resolve_sector(company, destination)
        lot = resolve_lot(company, lot, product)

        with transaction.atomic():
            origin_position, _ = cls.move_between(product, origin, destination, quantity, lot)
            movement = journal.record(
                company,
                origin.farm,
                MovementType.TRANSFER,
                [journal.JournalLine(
                    product=product,
                    lot=lot,
                    quantity=quantity,
                    unit_value=origin_position.average_cost,
                )],
                origin_sector=origin,
                destination_sector=destination,
                user=user,
                notes=reason or 'Transferência entre setores',
            )
            logger.info(
                "stock.transfer",
                extra={
                    "product_id": product.pk,
                    "origin_id": origin.pk,
                    "destination_id": destination.pk,
                    "qty": str(quantity),
                    "movement": movement.document_number,
                },
            )
            return TransferResult(movement, quantity)

    # ══════════════════════════════════════════════════════════════
    # PRIMITIVES (resolved rows, caller's transaction)
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def receive_into(cls, product, sector, quantity: Decimal, unit_cost: Decimal,
                     lot: Lot | None = None) -> StockPosition:
        """
        Increase on-hand and blend the average cost.

        Raises:
            StockError('INVALID_QUANTITY'): If quantity <= 0
            StockError('INVALID_COST'): If unit_cost < 0
            StockError('LOT_CAPACITY_EXCEEDED'): If the lot cap would break
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)
        if unit_cost < 0:
            raise StockError('INVALID_COST', unit_cost=unit_cost)

        if lot is not None:
            cls._check_lot_capacity(lot, quantity)

        return cls._increase(product, sector, lot, quantity, unit_cost)

    @classmethod
    def issue_from(cls, product, sector, quantity: Decimal,
                   lot: Lot | None = None) -> StockPosition:
        """
        Decrease on-hand, guarded by `available >= quantity` in the UPDATE.

        Average cost of the remaining stock is unchanged.

        Raises:
            StockError('INSUFFICIENT_STOCK'): If available < quantity
        """
        if quantity <= 0:
            raise StockError('INVALID_QUANTITY', requested=quantity)

        now = timezone.now()
        updated = (
            StockPosition.objects.at(product, sector, lot)
            .with_available(quantity)
            .update(
                quantity_on_hand=F('quantity_on_hand') - quantity,
                last_movement_at=now,
                updated_at=now,
            )
        )
        if not updated:
            current = StockPosition.objects.at(product, sector, lot).first()
            available = current.quantity_available if current else ZERO
            logger.warning(
                "stock.issue.insufficient",
                extra={
                    "product_id": product.pk,
                    "sector_id": sector.pk,
                    "lot_id": lot.pk if lot else None,
                    "available": str(available),
                    "qty": str(quantity),
                },
            )
            raise StockError(
                'INSUFFICIENT_STOCK',
                product_id=product.pk,
                sector_id=sector.pk,
                lot_id=lot.pk if lot else None,
                available=available,
                requested=quantity,
            )

        return StockPosition.objects.at(product, sector, lot).get()

    @classmethod
    def move_between(cls, product, origin, destination, quantity: Decimal,
                     lot: Lot | None = None) -> tuple[StockPosition, StockPosition]:
        """
        Issue from origin and receive at destination at origin's cost.

        The lot aggregate is unchanged, so no lot cap check is needed.

        Returns:
            (origin_position, destination_position)
        """
        if origin.pk == destination.pk:
            raise StockError('SAME_SECTOR', sector_id=origin.pk)

        origin_position = cls.issue_from(product, origin, quantity, lot)
        destination_position = cls._increase(
            product, destination, lot, quantity, origin_position.average_cost
        )
        return origin_position, destination_position

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _locked_position(cls, product, sector, lot) -> StockPosition | None:
        return (
            StockPosition.objects.select_for_update()
            .at(product, sector, lot)
            .first()
        )

    @classmethod
    def _increase(cls, product, sector, lot, quantity: Decimal,
                  unit_cost: Decimal) -> StockPosition:
        StockPosition.objects.get_or_create(product=product, sector=sector, lot=lot)
        position = cls._locked_position(product, sector, lot)

        total = position.quantity_on_hand + quantity
        if not fits_column(total, QUANTITY_DIGITS, QUANTITY_PLACES):
            raise StockError(
                'INVALID_QUANTITY',
                position_id=position.pk,
                current=position.quantity_on_hand,
                requested=quantity,
            )

        position.average_cost = weighted_average(
            position.quantity_on_hand, position.average_cost, quantity, unit_cost
        )
        position.quantity_on_hand = total
        position.last_movement_at = timezone.now()
        position.save(update_fields=[
            'quantity_on_hand', 'average_cost', 'last_movement_at', 'updated_at'
        ])
        return position

    @classmethod
    def _check_lot_capacity(cls, lot: Lot, quantity: Decimal) -> None:
        """Lock the lot row and enforce Σ on-hand + quantity <= initial."""
        locked = Lot.objects.select_for_update().get(pk=lot.pk)
        current = StockPosition.objects.filter(lot=locked).aggregate(
            t=Coalesce(Sum('quantity_on_hand'), ZERO)
        )['t']

        if current + quantity > locked.initial_quantity:
            raise StockError(
                'LOT_CAPACITY_EXCEEDED',
                lot_id=locked.pk,
                initial_quantity=locked.initial_quantity,
                current=current,
                requested=quantity,
            )

        if locked.status == LotStatus.CONSUMED:
            locked.status = LotStatus.ACTIVE
            locked.consumed_at = None
            locked.consumed_by = None
            locked.save(update_fields=['status', 'consumed_at', 'consumed_by', 'updated_at'])
            lot.status = LotStatus.ACTIVE
            logger.info("lot.reactivated", extra={"lot_id": locked.pk})
