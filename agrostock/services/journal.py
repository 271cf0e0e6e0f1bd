"""
Movement journal — document numbering and insert-once writes of headers/items.

Used by the ledger (adjust/transfer audit movements) and by the movement
engine. Nothing here opens a transaction of its own except the savepoints
around inserts that may hit a unique constraint.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from agrostock.conf import agrostock_settings
from agrostock.exceptions import StockError
from agrostock.models.enums import MovementStatus, MovementType
from agrostock.models.movement import DocumentSequence, Movement, MovementItem

logger = logging.getLogger('agrostock')

CENTS = Decimal('0.01')


@dataclass(frozen=True)
class JournalLine:
    """One item to be written under a movement header."""

    product: object
    quantity: Decimal
    unit_value: Decimal = Decimal('0')
    lot: object = None
    cost_basis: Decimal | None = None
    notes: str = ''

    @property
    def total_value(self) -> Decimal:
        return (self.quantity * self.unit_value).quantize(CENTS, rounding=ROUND_HALF_UP)


def next_document_number(company, movement_type, year: int) -> str:
    """
    Next document number for (company, type, year), e.g. "ENT-2026-000042".

    The F() increment locks the sequence row until the enclosing
    transaction ends, so concurrent creators are serialized.
    """
    code = MovementType(movement_type).code
    sequence, _ = DocumentSequence.objects.get_or_create(
        company=company, type_code=code, year=year,
    )
    DocumentSequence.objects.filter(pk=sequence.pk).update(
        last_number=F('last_number') + 1
    )
    sequence.refresh_from_db(fields=['last_number'])
    return f"{code}-{year}-{sequence.last_number:06d}"


def insert_header(company, *, movement_type, movement_date: date,
                  document_number: str = '', **fields) -> Movement:
    """
    Insert a movement header.

    Caller-supplied document numbers are tried once. Generated numbers are
    regenerated on a unique-constraint conflict up to MAX_IDENTIFIER_RETRIES.

    Raises:
        StockError('DUPLICATE_DOCUMENT'): Supplied number already used
        StockError('INTEGRITY_CONFLICT'): Retries exhausted
    """
    if document_number:
        try:
            with transaction.atomic():
                return Movement.objects.create(
                    company=company,
                    movement_type=movement_type,
                    movement_date=movement_date,
                    document_number=document_number,
                    **fields,
                )
        except IntegrityError:
            raise StockError(
                'DUPLICATE_DOCUMENT', document_number=document_number
            ) from None

    attempts = max(1, agrostock_settings.MAX_IDENTIFIER_RETRIES)
    for attempt in range(1, attempts + 1):
        number = next_document_number(company, movement_type, movement_date.year)
        try:
            with transaction.atomic():
                return Movement.objects.create(
                    company=company,
                    movement_type=movement_type,
                    movement_date=movement_date,
                    document_number=number,
                    **fields,
                )
        except IntegrityError:
            logger.warning(
                "movement.document_number.conflict",
                extra={
                    "company_id": company.pk,
                    "document_number": number,
                    "attempt": attempt,
                },
            )

    raise StockError(
        'INTEGRITY_CONFLICT',
        field='document_number',
        attempts=attempts,
    )


def add_item(movement: Movement, line: JournalLine) -> MovementItem:
    cost_basis = line.unit_value if line.cost_basis is None else line.cost_basis
    return MovementItem.objects.create(
        movement=movement,
        product=line.product,
        lot=line.lot,
        quantity=line.quantity,
        unit_value=line.unit_value,
        total_value=line.total_value,
        cost_basis=cost_basis,
        notes=line.notes,
    )


def set_total(movement: Movement, total: Decimal) -> Movement:
    movement.total_value = total.quantize(CENTS, rounding=ROUND_HALF_UP)
    movement.save(update_fields=['total_value', 'updated_at'])
    return movement


def record(company, farm, movement_type, lines: list[JournalLine], *,
           origin_sector=None, destination_sector=None, user=None,
           notes: str = '', status=MovementStatus.CONFIRMED,
           movement_date: date | None = None) -> Movement:
    """
    Write a complete audit movement (header + items) for an effect the
    ledger has already applied.
    """
    confirmed = {}
    if status == MovementStatus.CONFIRMED:
        confirmed = {'confirmed_by': user, 'confirmed_at': timezone.now()}

    movement = insert_header(
        company,
        farm=farm,
        movement_type=movement_type,
        movement_date=movement_date or timezone.localdate(),
        origin_sector=origin_sector,
        destination_sector=destination_sector,
        status=status,
        notes=notes,
        created_by=user,
        **confirmed,
    )
    total = Decimal('0')
    for line in lines:
        add_item(movement, line)
        total += line.total_value
    return set_total(movement, total)
