"""
Movement engine — multi-item movements, status lifecycle and reversal.

create_complete() validates the whole request first, then writes header,
ledger effects and items inside one transaction.atomic(): either the full
movement is applied or nothing is.
"""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone
from django.utils.dateparse import parse_date

from agrostock.conf import agrostock_settings
from agrostock.exceptions import StockError
from agrostock.models.enums import MovementStatus, MovementType
from agrostock.models.movement import Movement
from agrostock.services import journal
from agrostock.services.ledger import (
    COST_DIGITS,
    COST_PLACES,
    QUANTITY_DIGITS,
    QUANTITY_PLACES,
    StockLedger,
    fits_column,
)
from agrostock.services.scoping import (
    resolve_company,
    resolve_farm,
    resolve_lot,
    resolve_movement,
    resolve_product,
    resolve_sector,
)

logger = logging.getLogger('agrostock')

ZERO = Decimal('0')
CENTS = Decimal('0.01')

TOTAL_DIGITS, TOTAL_PLACES = 16, 2

CANCELLABLE = (MovementStatus.PENDING, MovementStatus.APPROVED)


def _parse_decimal(value) -> Decimal | None:
    if value is None or value == '':
        return None
    try:
        parsed = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return parsed if parsed.is_finite() else None


def _parse_movement_date(value) -> date | None:
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_date(value)
        except ValueError:
            return None
    return None


class MovementEngine:
    """Movement creation, workflow and queries."""

    # ══════════════════════════════════════════════════════════════
    # CREATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def create_complete(cls, company, header: dict, items: list[dict],
                        user=None) -> Movement:
        """
        Create a movement with its items and apply its stock effects.

        header keys:
            farm, movement_type, movement_date (required),
            origin_sector, destination_sector, document_number, notes
        item keys:
            product, quantity (required), unit_value, lot, notes

        Dispatch per movement type:
            inbound / adjustment_positive  → receive at destination
            outbound / adjustment_negative → issue from origin
            transfer                       → origin → destination

        Raises:
            StockError('VALIDATION_ERROR'): With data['fields']
            StockError('INSUFFICIENT_STOCK'): Any exit item over availability
            StockError(<not found codes>): Reference outside the company
        """
        company = resolve_company(company)
        header, lines = cls._validate(header, items)

        movement_type = MovementType(header['movement_type'])
        farm = resolve_farm(company, header['farm'])
        origin = destination = None
        if header.get('origin_sector') is not None:
            origin = resolve_sector(company, header['origin_sector'])
        if header.get('destination_sector') is not None:
            destination = resolve_sector(company, header['destination_sector'])

        resolved = []
        for line in lines:
            product = resolve_product(company, line['product'])
            lot = resolve_lot(company, line.get('lot'), product)
            resolved.append((product, lot, line))

        with transaction.atomic():
            movement = journal.insert_header(
                company,
                farm=farm,
                movement_type=movement_type,
                movement_date=header['movement_date'],
                document_number=header.get('document_number') or '',
                origin_sector=origin,
                destination_sector=destination,
                status=MovementStatus.PENDING,
                notes=header.get('notes') or '',
                created_by=user,
            )

            total = ZERO
            for product, lot, line in resolved:
                quantity = line['quantity']
                unit_value = line['unit_value']

                if movement_type.is_entry:
                    StockLedger.receive_into(product, destination, quantity, unit_value, lot)
                    cost_basis = unit_value
                elif movement_type.is_exit:
                    position = StockLedger.issue_from(product, origin, quantity, lot)
                    cost_basis = position.average_cost
                else:
                    position, _ = StockLedger.move_between(
                        product, origin, destination, quantity, lot
                    )
                    cost_basis = position.average_cost

                journal_line = journal.JournalLine(
                    product=product,
                    lot=lot,
                    quantity=quantity,
                    unit_value=unit_value,
                    cost_basis=cost_basis,
                    notes=line.get('notes') or '',
                )
                journal.add_item(movement, journal_line)
                total += journal_line.total_value

            journal.set_total(movement, total)

            logger.info(
                "movement.created",
                extra={
                    "movement_id": movement.pk,
                    "document_number": movement.document_number,
                    "type": movement.movement_type,
                    "items": len(resolved),
                    "total_value": str(movement.total_value),
                },
            )

        return cls.get(company, movement.pk)

    @classmethod
    def _validate(cls, header: dict, items: list[dict]) -> tuple[dict, list[dict]]:
        """
        Collect every input problem and raise them together.

        Returns normalized copies of header and items (dates and decimals
        parsed).
        """
        errors: dict[str, str] = {}
        header = dict(header or {})

        if not header.get('farm'):
            errors['farm'] = 'Fazenda é obrigatória'

        movement_type = header.get('movement_type')
        if not movement_type:
            errors['movement_type'] = 'Tipo de movimentação é obrigatório'
        elif movement_type not in MovementType.values:
            errors['movement_type'] = 'Tipo de movimentação inválido'
            movement_type = None

        movement_date = _parse_movement_date(header.get('movement_date'))
        if movement_date is None:
            errors['movement_date'] = 'Data da movimentação é obrigatória'
        header['movement_date'] = movement_date

        if movement_type:
            kind = MovementType(movement_type)
            needs_origin = kind.is_exit or kind == MovementType.TRANSFER
            needs_destination = kind.is_entry or kind == MovementType.TRANSFER
            if needs_origin and header.get('origin_sector') is None:
                errors['origin_sector'] = 'Setor de origem é obrigatório'
            if needs_destination and header.get('destination_sector') is None:
                errors['destination_sector'] = 'Setor de destino é obrigatório'
            if (
                kind == MovementType.TRANSFER
                and header.get('origin_sector') is not None
                and getattr(header['origin_sector'], 'pk', header['origin_sector'])
                == getattr(header.get('destination_sector'), 'pk', header.get('destination_sector'))
            ):
                errors['destination_sector'] = 'Setor de destino deve ser diferente da origem'

        lines = []
        grand_total = ZERO
        if not items:
            errors['items'] = 'Informe ao menos um item'
        for index, item in enumerate(items or []):
            item = dict(item)
            prefix = f'items[{index}]'

            if not item.get('product'):
                errors[f'{prefix}.product'] = 'Produto é obrigatório'

            quantity = _parse_decimal(item.get('quantity'))
            if quantity is None or quantity <= 0:
                errors[f'{prefix}.quantity'] = 'Quantidade deve ser maior que zero'
            elif not fits_column(quantity, QUANTITY_DIGITS, QUANTITY_PLACES):
                errors[f'{prefix}.quantity'] = (
                    'Quantidade aceita até 3 casas decimais e 11 dígitos inteiros'
                )
                quantity = None
            item['quantity'] = quantity

            raw_value = item.get('unit_value')
            unit_value = ZERO if raw_value in (None, '') else _parse_decimal(raw_value)
            if unit_value is None or unit_value < 0:
                errors[f'{prefix}.unit_value'] = 'Valor unitário não pode ser negativo'
            elif not fits_column(unit_value, COST_DIGITS, COST_PLACES):
                errors[f'{prefix}.unit_value'] = (
                    'Valor unitário aceita até 4 casas decimais e 10 dígitos inteiros'
                )
                unit_value = None
            item['unit_value'] = unit_value

            if quantity is not None and unit_value is not None:
                line_total = (quantity * unit_value).quantize(CENTS, rounding=ROUND_HALF_UP)
                grand_total += line_total
                if not fits_column(line_total, TOTAL_DIGITS, TOTAL_PLACES):
                    errors[f'{prefix}.unit_value'] = 'Valor total do item excede o limite'

            lines.append(item)

        if not fits_column(grand_total, TOTAL_DIGITS, TOTAL_PLACES):
            errors['items'] = 'Valor total da movimentação excede o limite'

        if errors:
            raise StockError('VALIDATION_ERROR', fields=errors)

        return header, lines

    # ══════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def approve(cls, company, movement, user=None) -> Movement:
        """
        Approve a pending movement (workflow gate, no stock effect).

        Transition: PENDING → APPROVED

        Raises:
            StockError('INVALID_STATUS'): If status is not PENDING
            StockError('SELF_APPROVAL'): Creator approving own movement
        """
        company = resolve_company(company)

        with transaction.atomic():
            movement = resolve_movement(company, movement, lock=True)

            if movement.status != MovementStatus.PENDING:
                raise StockError(
                    'INVALID_STATUS',
                    current=movement.status,
                    expected=MovementStatus.PENDING,
                )

            if (
                not agrostock_settings.ALLOW_SELF_APPROVAL
                and user is not None
                and movement.created_by_id == user.pk
            ):
                raise StockError('SELF_APPROVAL', movement_id=movement.pk)

            movement.status = MovementStatus.APPROVED
            movement.approved_by = user
            movement.approved_at = timezone.now()
            movement.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])
            logger.info(
                "movement.approved",
                extra={"movement_id": movement.pk, "user_id": getattr(user, 'pk', None)},
            )
            return movement

    @classmethod
    def confirm(cls, company, movement, user=None) -> Movement:
        """
        Confirm an approved movement.

        Transition: APPROVED → CONFIRMED

        Raises:
            StockError('INVALID_STATUS'): If status is not APPROVED
        """
        company = resolve_company(company)

        with transaction.atomic():
            movement = resolve_movement(company, movement, lock=True)

            if movement.status != MovementStatus.APPROVED:
                raise StockError(
                    'INVALID_STATUS',
                    current=movement.status,
                    expected=MovementStatus.APPROVED,
                )

            movement.status = MovementStatus.CONFIRMED
            movement.confirmed_by = user
            movement.confirmed_at = timezone.now()
            movement.save(update_fields=['status', 'confirmed_by', 'confirmed_at', 'updated_at'])
            logger.info(
                "movement.confirmed",
                extra={"movement_id": movement.pk, "user_id": getattr(user, 'pk', None)},
            )
            return movement

    @classmethod
    def cancel(cls, company, movement, user=None, reason: str = '') -> Movement:
        """
        Cancel a movement and reverse its stock effects.

        Transition: PENDING|APPROVED → CANCELLED
        (CONFIRMED too when ALLOW_CANCEL_CONFIRMED is set)

        Reversal per type:
            entry    → issue the same quantities from destination
            exit     → receive the same quantities back at origin, at the
                       cost they left with
            transfer → move back from destination to origin

        Raises:
            StockError('INVALID_STATUS'): Already cancelled / not cancellable
            StockError('INSUFFICIENT_STOCK'): Entry already consumed
        """
        company = resolve_company(company)

        with transaction.atomic():
            movement = resolve_movement(company, movement, lock=True)

            allowed = CANCELLABLE
            if agrostock_settings.ALLOW_CANCEL_CONFIRMED:
                allowed = CANCELLABLE + (MovementStatus.CONFIRMED,)

            if movement.status not in allowed:
                raise StockError(
                    'INVALID_STATUS',
                    current=movement.status,
                    expected=list(allowed),
                )

            kind = movement.kind
            origin = movement.origin_sector
            destination = movement.destination_sector

            for item in movement.items.select_related('product', 'lot'):
                if kind.is_entry:
                    StockLedger.issue_from(item.product, destination, item.quantity, item.lot)
                elif kind.is_exit:
                    StockLedger.receive_into(
                        item.product, origin, item.quantity, item.cost_basis, item.lot
                    )
                else:
                    StockLedger.move_between(
                        item.product, destination, origin, item.quantity, item.lot
                    )

            previous_status = movement.status
            movement.status = MovementStatus.CANCELLED
            movement.cancelled_by = user
            movement.cancelled_at = timezone.now()
            movement.cancel_reason = reason[:255]
            movement.save(update_fields=[
                'status', 'cancelled_by', 'cancelled_at', 'cancel_reason', 'updated_at'
            ])
            logger.info(
                "movement.cancelled",
                extra={
                    "movement_id": movement.pk,
                    "previous_status": previous_status,
                    "reason": reason,
                },
            )
            return movement

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def get(cls, company, movement) -> Movement:
        """Movement with items, scoped to the company."""
        company = resolve_company(company)
        found = (
            Movement.objects.for_company(company)
            .select_related('farm', 'origin_sector', 'destination_sector')
            .prefetch_related('items__product', 'items__lot')
            .filter(pk=getattr(movement, 'pk', movement))
            .first()
        )
        if found is None:
            raise StockError('MOVEMENT_NOT_FOUND', movement_id=getattr(movement, 'pk', movement))
        return found

    @classmethod
    def list_movements(cls, company, date_from: date | None = None, date_to: date | None = None,
             movement_type: str | None = None, sector=None, status: str | None = None):
        """List movements with filters, newest first."""
        company = resolve_company(company)
        qs = (
            Movement.objects.for_company(company)
            .select_related('farm', 'origin_sector', 'destination_sector')
            .annotate(item_count=Count('items'))
        )
        if date_from:
            qs = qs.filter(movement_date__gte=date_from)
        if date_to:
            qs = qs.filter(movement_date__lte=date_to)
        if movement_type:
            qs = qs.filter(movement_type=movement_type)
        if sector is not None:
            qs = qs.touching_sector(resolve_sector(company, sector))
        if status:
            qs = qs.filter(status=status)
        return qs.order_by('-movement_date', '-pk')

    @classmethod
    def summary_by_type(cls, company, date_from: date, date_to: date) -> dict:
        """
        Count and value per movement type for a period (cancelled excluded).

        Returns:
            {'by_type': {type: {'count', 'total_value'}},
             'entries_value': Decimal, 'exits_value': Decimal}
        """
        company = resolve_company(company)
        rows = (
            Movement.objects.for_company(company)
            .not_cancelled()
            .filter(movement_date__range=(date_from, date_to))
            .values('movement_type')
            .annotate(
                count=Count('pk'),
                total_value=Coalesce(Sum('total_value'), ZERO),
            )
            .order_by('movement_type')
        )

        by_type = {}
        entries = exits = ZERO
        for row in rows:
            kind = MovementType(row['movement_type'])
            by_type[kind.value] = {'count': row['count'], 'total_value': row['total_value']}
            if kind.is_entry:
                entries += row['total_value']
            elif kind.is_exit:
                exits += row['total_value']

        return {'by_type': by_type, 'entries_value': entries, 'exits_value': exits}
