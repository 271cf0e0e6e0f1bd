"""
Tests for read-only stock queries.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from agrostock import StockError, ledger, lots, movements, queries
from agrostock.models import MovementType, Sector, StockLevel, StockPosition


pytestmark = pytest.mark.django_db


class TestPositions:
    """Tests for get_position() and list_positions()."""

    def test_get_position_missing(self, company, seed, warehouse):
        assert queries.get_position(company, seed, warehouse) is None

    def test_get_position(self, company, seed, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('12'), user)

        position = queries.get_position(company, seed, warehouse)

        assert position.quantity_on_hand == Decimal('12')

    def test_list_positions_hides_empty(self, company, seed, fertilizer, warehouse, silo, user):
        ledger.adjust(company, seed, warehouse, Decimal('12'), user)
        ledger.adjust(company, fertilizer, silo, Decimal('3'), user)
        ledger.adjust(company, fertilizer, silo, Decimal('0'), user)

        assert [p.product for p in queries.list_positions(company)] == [seed]
        assert queries.list_positions(company, only_with_stock=False).count() == 2
        assert queries.list_positions(company, sector=silo).count() == 0

    def test_list_positions_is_tenant_scoped(self, company, other_company, other_product,
                                             other_sector, user):
        ledger.adjust(other_company, other_product, other_sector, Decimal('9'), user)

        assert queries.list_positions(company).count() == 0
        assert queries.list_positions(other_company).count() == 1


class TestStockStatus:
    """Tests for stock_status() against min 10 / max 500."""

    @pytest.mark.parametrize('quantity,level', [
        ('5', StockLevel.CRITICAL),
        ('10', StockLevel.CRITICAL),
        ('15', StockLevel.LOW),
        ('100', StockLevel.NORMAL),
        ('500', StockLevel.HIGH),
    ])
    def test_levels(self, seed, warehouse, quantity, level):
        position = StockPosition(product=seed, sector=warehouse,
                                 quantity_on_hand=Decimal(quantity))

        assert queries.stock_status(position) == level

    def test_no_thresholds(self, fertilizer, warehouse):
        position = StockPosition(product=fertilizer, sector=warehouse,
                                 quantity_on_hand=Decimal('0'))

        assert queries.stock_status(position) == StockLevel.NORMAL


class TestLowStock:
    """Tests for low_stock() and out_of_stock()."""

    def test_low_stock_report(self, company, seed, fertilizer, grain, warehouse, silo, user):
        ledger.adjust(company, seed, warehouse, Decimal('3'), user)
        ledger.adjust(company, seed, silo, Decimal('1'), user)
        ledger.adjust(company, fertilizer, warehouse, Decimal('1'), user)

        report = queries.low_stock(company)

        assert len(report) == 1
        row = report[0]
        assert row['product'] == seed
        assert row['on_hand'] == Decimal('4')
        assert row['locations'] == 2
        assert row['percent_of_minimum'] == Decimal('40.00')

    def test_low_stock_above_minimum(self, company, seed, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('11'), user)

        assert queries.low_stock(company) == []

    def test_out_of_stock(self, company, seed, fertilizer, grain, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('3'), user)

        assert list(queries.out_of_stock(company)) == [fertilizer]


class TestExpiry:
    """Tests for expiring_lots(), expired_lots_with_stock() and fefo_positions()."""

    def test_expiring_lots(self, company, seed, warehouse, user, yesterday,
                           in_ten_days, next_year):
        soon = lots.create_lot(company, seed, Decimal('10'), expiry_date=in_ten_days)
        later = lots.create_lot(company, seed, Decimal('10'), expiry_date=next_year)
        expired = lots.create_lot(company, seed, Decimal('10'), expiry_date=yesterday)
        lots.create_lot(company, seed, Decimal('10'), expiry_date=in_ten_days)
        for lot in (soon, later, expired):
            ledger.adjust(company, seed, warehouse, Decimal('10'), user, lot=lot)

        assert list(queries.expiring_lots(company)) == [soon]
        assert list(queries.expiring_lots(company, days=400)) == [soon, later]
        assert list(queries.expired_lots_with_stock(company)) == [expired]
        assert queries.expiring_lots(company).get().on_hand == Decimal('10')

    def test_fefo_order(self, company, seed, warehouse, user, in_ten_days, next_year):
        late = lots.create_lot(company, seed, Decimal('10'), expiry_date=next_year)
        early = lots.create_lot(company, seed, Decimal('10'), expiry_date=in_ten_days)
        ledger.adjust(company, seed, warehouse, Decimal('5'), user)
        ledger.adjust(company, seed, warehouse, Decimal('5'), user, lot=late)
        ledger.adjust(company, seed, warehouse, Decimal('5'), user, lot=early)

        ordered = [p.lot for p in queries.fefo_positions(company, seed)]

        assert ordered == [early, late, None]

    def test_fefo_skips_fully_reserved(self, company, seed, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('5'), user)
        ledger.reserve(company, seed, warehouse, Decimal('5'))

        assert list(queries.fefo_positions(company, seed)) == []


class TestSummaries:
    """Tests for sector_summary(), farm_summary() and statistics()."""

    def test_sector_summary(self, company, seed, fertilizer, warehouse, silo, user):
        ledger.adjust(company, seed, warehouse, Decimal('100'), user, unit_cost=Decimal('10'))
        ledger.adjust(company, fertilizer, warehouse, Decimal('10'), user, unit_cost=Decimal('3'))
        ledger.adjust(company, seed, silo, Decimal('250'), user, unit_cost=Decimal('2'))

        summary = {row['sector']: row for row in queries.sector_summary(company)}

        assert summary[warehouse]['product_count'] == 2
        assert summary[warehouse]['total_value'] == Decimal('1030')
        assert summary[warehouse]['occupancy_percent'] is None
        assert summary[silo]['total_quantity'] == Decimal('250')
        assert summary[silo]['occupancy_percent'] == Decimal('25.00')

    def test_inactive_sector_is_skipped(self, company, farm, seed, warehouse, user):
        Sector.objects.create(farm=farm, name='Desativado', is_active=False)

        sectors = [row['sector'] for row in queries.sector_summary(company)]

        assert sectors == [warehouse]

    def test_farm_summary(self, company, farm, seed, warehouse, silo, user):
        ledger.adjust(company, seed, warehouse, Decimal('4'), user, unit_cost=Decimal('10'))
        ledger.adjust(company, seed, silo, Decimal('100'), user, unit_cost=Decimal('1'))

        [row] = queries.farm_summary(company)

        assert row['farm'] == farm
        assert row['product_count'] == 1
        assert row['position_count'] == 2
        assert row['total_value'] == Decimal('140')
        assert row['low_stock_positions'] == 1

    def test_statistics(self, company, seed, fertilizer, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('10'), user, unit_cost=Decimal('2'))
        ledger.adjust(company, fertilizer, warehouse, Decimal('1'), user)
        ledger.adjust(company, fertilizer, warehouse, Decimal('0'), user)

        stats = queries.statistics(company)

        assert stats['positions'] == 2
        assert stats['products_with_stock'] == 1
        assert stats['total_quantity'] == Decimal('10')
        assert stats['total_value'] == Decimal('20')
        assert stats['empty_positions'] == 1


class TestPositionHistory:
    """Tests for position_history()."""

    def test_items_touching_the_position(self, company, seed, fertilizer, warehouse, silo, user):
        lot = lots.create_lot(company, seed, Decimal('10'), lot_number='L-HIST')
        ledger.adjust(company, seed, warehouse, Decimal('10'), user)
        ledger.adjust(company, seed, warehouse, Decimal('3'), user, lot=lot)
        ledger.transfer(company, seed, warehouse, silo, Decimal('4'), user)
        ledger.adjust(company, fertilizer, warehouse, Decimal('8'), user)

        history = list(queries.position_history(company, seed, warehouse))

        assert [item.movement.movement_type for item in history] == [
            MovementType.TRANSFER, MovementType.ADJUSTMENT_POSITIVE,
        ]
        assert queries.position_history(company, seed, silo).count() == 1
        assert [i.quantity for i in queries.position_history(company, seed, warehouse, lot)] == [
            Decimal('3'),
        ]

    def test_limit(self, company, seed, warehouse, user):
        for quantity in ('1', '2', '3'):
            ledger.adjust(company, seed, warehouse, Decimal(quantity), user)

        assert len(queries.position_history(company, seed, warehouse, limit=2)) == 2

    def test_other_tenant_sector(self, company, seed, other_sector):
        with pytest.raises(StockError) as exc:
            queries.position_history(company, seed, other_sector)

        assert exc.value.code == 'SECTOR_NOT_FOUND'


class TestCheckAvailability:
    """Tests for check_availability()."""

    def test_reserved_stock_is_not_available(self, company, seed, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('100'), user)
        ledger.reserve(company, seed, warehouse, Decimal('30'))

        result = queries.check_availability(company, seed, warehouse, '70')

        assert result['on_hand'] == Decimal('100')
        assert result['reserved'] == Decimal('30')
        assert result['available'] == Decimal('70')
        assert result['sufficient'] is True
        assert queries.check_availability(company, seed, warehouse, '70.001')['sufficient'] is False

    def test_missing_position(self, company, seed, warehouse):
        result = queries.check_availability(company, seed, warehouse, Decimal('1'))

        assert result['position'] is None
        assert result['available'] == Decimal('0')
        assert result['sufficient'] is False

    def test_invalid_quantity(self, company, seed, warehouse):
        with pytest.raises(StockError) as exc:
            queries.check_availability(company, seed, warehouse, Decimal('-1'))

        assert exc.value.code == 'INVALID_QUANTITY'


class TestIdlePositions:
    """Tests for idle_positions()."""

    def test_never_moved_first_then_oldest(self, company, seed, fertilizer, grain,
                                           warehouse, silo, user):
        ledger.adjust(company, seed, warehouse, Decimal('10'), user)
        ledger.adjust(company, fertilizer, silo, Decimal('5'), user)
        ledger.adjust(company, seed, silo, Decimal('5'), user)
        ledger.adjust(company, seed, silo, Decimal('0'), user)
        untouched = StockPosition.objects.create(
            product=grain, sector=warehouse, quantity_on_hand=Decimal('3'),
        )
        StockPosition.objects.filter(sector=silo).update(
            last_movement_at=timezone.now() - timedelta(days=100),
        )

        idle = list(queries.idle_positions(company, days=90))

        assert [p.product for p in idle] == [grain, fertilizer]
        assert idle[0] == untouched

    def test_other_tenant_is_ignored(self, company, other_company, other_product,
                                     other_sector, user):
        ledger.adjust(other_company, other_product, other_sector, Decimal('5'), user)
        StockPosition.objects.update(last_movement_at=timezone.now() - timedelta(days=400))

        assert list(queries.idle_positions(company)) == []
        assert len(queries.idle_positions(other_company)) == 1


class TestMostMovedProducts:
    """Tests for most_moved_products()."""

    def test_ranked_by_movement_count(self, company, farm, seed, fertilizer, grain,
                                      warehouse, user, today):
        ledger.adjust(company, seed, warehouse, Decimal('10'), user)
        ledger.adjust(company, seed, warehouse, Decimal('20'), user)
        ledger.adjust(company, fertilizer, warehouse, Decimal('5'), user)
        cancelled = movements.create_complete(
            company,
            {
                'farm': farm,
                'movement_type': MovementType.INBOUND,
                'movement_date': today,
                'destination_sector': warehouse,
            },
            [{'product': grain, 'quantity': '50'}],
            user,
        )
        movements.cancel(company, cancelled, user, 'Lançado em duplicidade')

        ranking = queries.most_moved_products(company)

        assert [row['product_id'] for row in ranking] == [seed.pk, fertilizer.pk]
        assert ranking[0]['movement_count'] == 2
        assert ranking[0]['total_quantity'] == Decimal('20')
        assert ranking[0]['internal_code'] == 'SOJ01'

    def test_period_and_limit(self, company, seed, fertilizer, warehouse, user, today):
        ledger.adjust(company, seed, warehouse, Decimal('10'), user)
        ledger.adjust(company, fertilizer, warehouse, Decimal('5'), user)

        assert queries.most_moved_products(company, date_from=today + timedelta(days=1),
                                           date_to=today + timedelta(days=2)) == []
        assert len(queries.most_moved_products(company, limit=1)) == 1

    def test_other_tenant_is_ignored(self, company, other_company, other_product,
                                     other_sector, user):
        ledger.adjust(other_company, other_product, other_sector, Decimal('5'), user)

        assert queries.most_moved_products(company) == []
