"""
Management command to mark empty lots as consumed.

Only lots that already received stock are considered; a lot registered
ahead of its first inbound stays active.

Usage:
    python manage.py consume_empty_lots
    python manage.py consume_empty_lots --company 3
    python manage.py consume_empty_lots --dry-run
"""

import logging
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db.models import DecimalField, Exists, OuterRef, Sum
from django.db.models.functions import Coalesce

from agrostock import lots
from agrostock.exceptions import StockError
from agrostock.models import Lot, StockPosition

logger = logging.getLogger('agrostock')


class Command(BaseCommand):
    """Consume active lots whose stock reached zero."""

    help = 'Marca como consumidos os lotes ativos sem estoque'

    def add_arguments(self, parser):
        parser.add_argument(
            '--company',
            type=int,
            help='Restringe a uma empresa (ID)'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra o que seria consumido sem executar'
        )

    def handle(self, *args, **options):
        empty = (
            Lot.objects.active()
            .filter(Exists(StockPosition.objects.filter(lot=OuterRef('pk'))))
            .annotate(on_hand=Coalesce(
                Sum('positions__quantity_on_hand'), Decimal('0'),
                output_field=DecimalField(max_digits=20, decimal_places=3),
            ))
            .filter(on_hand=0)
            .select_related('product')
        )
        if options['company']:
            empty = empty.filter(product__company_id=options['company'])

        if options['dry_run']:
            self.stdout.write(f'{empty.count()} lote(s) seria(m) consumido(s)')
            return

        count = skipped = 0
        for lot in empty:
            try:
                lots.mark_consumed(lot.product.company_id, lot)
            except StockError as exc:
                skipped += 1
                logger.warning(
                    "lot.consume.skipped",
                    extra={"lot_id": lot.pk, "code": exc.code},
                )
                continue
            count += 1

        self.stdout.write(
            self.style.SUCCESS(f'{count} lote(s) consumido(s)')
        )
        if skipped:
            self.stdout.write(
                self.style.WARNING(f'{skipped} lote(s) ignorado(s)')
            )
