"""
Management command to list lots close to expiry (and expired ones still in stock).

Usage:
    python manage.py expiring_lots --company 3
    python manage.py expiring_lots --company 3 --days 15
"""

from django.core.management.base import BaseCommand, CommandError

from agrostock import StockError, queries
from agrostock.expiry import days_to_expiry


class Command(BaseCommand):
    """Report expiring and expired lots of a company."""

    help = 'Lista lotes vencendo e vencidos com estoque'

    def add_arguments(self, parser):
        parser.add_argument(
            '--company',
            type=int,
            required=True,
            help='Empresa (ID)'
        )
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Janela de aviso em dias (padrão: EXPIRY_WARNING_DAYS)'
        )

    def handle(self, *args, **options):
        try:
            expiring = list(queries.expiring_lots(options['company'], days=options['days']))
            expired = list(queries.expired_lots_with_stock(options['company']))
        except StockError as exc:
            raise CommandError(str(exc)) from exc

        for lot in expired:
            self.stdout.write(self.style.ERROR(
                f'VENCIDO   {lot.lot_number}  {lot.product.name}  '
                f'val:{lot.expiry_date}  saldo:{lot.on_hand}'
            ))
        for lot in expiring:
            self.stdout.write(self.style.WARNING(
                f'VENCENDO  {lot.lot_number}  {lot.product.name}  '
                f'val:{lot.expiry_date} ({days_to_expiry(lot)}d)  saldo:{lot.on_hand}'
            ))

        self.stdout.write(
            f'{len(expiring)} lote(s) vencendo, {len(expired)} vencido(s) com estoque'
        )
