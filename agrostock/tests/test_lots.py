"""
Tests for the lot tracker.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from agrostock import StockError, ledger, lots, movements
from agrostock.models import ExpiryStatus, Lot, LotStatus, MovementType


pytestmark = pytest.mark.django_db


class TestGenerateLotNumber:
    """Tests for lots.generate_lot_number()."""

    def test_format(self, company, seed, today):
        """Prefix from the internal code, today's date, per-product sequence."""
        number = lots.generate_lot_number(company, seed)

        assert number == f"SOJ-{today.strftime('%Y%m%d')}-0001"

    def test_sequence_counts_existing_lots(self, company, seed, today):
        lots.create_lot(company, seed, Decimal('10'), lot_number='MANUAL-1')

        number = lots.generate_lot_number(company, seed)

        assert number.endswith('-0002')

    def test_prefix_override(self, company, seed):
        assert lots.generate_lot_number(company, seed, prefix='LT').startswith('LT-')

    def test_prefix_from_name_without_code(self, company, grain):
        assert lots.generate_lot_number(company, grain).startswith('MIL-')


class TestCreateLot:
    """Tests for lots.create_lot()."""

    def test_generates_number(self, company, seed, today, next_year):
        lot = lots.create_lot(
            company, seed, Decimal('200'),
            manufacture_date=today, expiry_date=next_year, supplier='Cooperativa Sul',
        )

        assert lot.lot_number == f"SOJ-{today.strftime('%Y%m%d')}-0001"
        assert lot.status == LotStatus.ACTIVE
        assert lot.initial_quantity == Decimal('200')

    def test_explicit_number_is_stripped(self, company, seed):
        lot = lots.create_lot(company, seed, Decimal('5'), lot_number='  L-77 ')

        assert lot.lot_number == 'L-77'

    def test_duplicate_number_is_case_insensitive(self, company, seed):
        lots.create_lot(company, seed, Decimal('10'), lot_number='L-001')

        with pytest.raises(StockError) as exc:
            lots.create_lot(company, seed, Decimal('10'), lot_number='l-001')

        assert exc.value.code == 'DUPLICATE_LOT_NUMBER'
        assert exc.value.kind == 'integrity_conflict'

    def test_same_number_on_other_product(self, company, seed, fertilizer):
        lots.create_lot(company, seed, Decimal('10'), lot_number='L-001')
        lot = lots.create_lot(company, fertilizer, Decimal('10'), lot_number='L-001')

        assert lot.product == fertilizer

    def test_generated_number_skips_taken_one(self, company, seed, today):
        """A generated number already in use is regenerated with the next sequence."""
        taken = f"SOJ-{today.strftime('%Y%m%d')}-0002"
        lots.create_lot(company, seed, Decimal('10'), lot_number=taken)

        lot = lots.create_lot(company, seed, Decimal('10'))

        assert lot.lot_number == f"SOJ-{today.strftime('%Y%m%d')}-0003"

    def test_validation(self, company, seed, today):
        with pytest.raises(StockError) as exc:
            lots.create_lot(
                company, seed, Decimal('0'),
                manufacture_date=today, expiry_date=today - timedelta(days=1),
            )

        assert exc.value.code == 'VALIDATION_ERROR'
        assert set(exc.value.fields) == {'initial_quantity', 'expiry_date'}

    def test_future_manufacture_date(self, company, seed, today):
        with pytest.raises(StockError) as exc:
            lots.create_lot(
                company, seed, Decimal('1'), manufacture_date=today + timedelta(days=2),
            )

        assert 'manufacture_date' in exc.value.fields

    @pytest.mark.parametrize('quantity', ['0.0004', '1e15', 'muito'])
    def test_initial_quantity_outside_column(self, company, seed, quantity):
        with pytest.raises(StockError) as exc:
            lots.create_lot(company, seed, quantity)

        assert set(exc.value.fields) == {'initial_quantity'}
        assert not Lot.objects.exists()

    def test_other_tenant_product(self, company, other_product):
        with pytest.raises(StockError) as exc:
            lots.create_lot(company, other_product, Decimal('1'))

        assert exc.value.code == 'PRODUCT_NOT_FOUND'

    def test_is_number_unique(self, company, seed):
        lot = lots.create_lot(company, seed, Decimal('1'), lot_number='ABC')

        assert not lots.is_number_unique(seed, 'abc')
        assert lots.is_number_unique(seed, 'abc', exclude_id=lot.pk)
        assert lots.is_number_unique(seed, 'XYZ')


class TestClassify:
    """Tests for lots.classify()."""

    def test_no_expiry(self):
        assert lots.classify(Lot(expiry_date=None)) == ExpiryStatus.NO_EXPIRY

    def test_expired_includes_today(self, today, yesterday):
        assert lots.classify(Lot(expiry_date=yesterday)) == ExpiryStatus.EXPIRED
        assert lots.classify(Lot(expiry_date=today)) == ExpiryStatus.EXPIRED

    def test_expiring_within_window(self, in_ten_days):
        assert lots.classify(Lot(expiry_date=in_ten_days)) == ExpiryStatus.EXPIRING

    def test_valid_beyond_window(self, next_year):
        assert lots.classify(Lot(expiry_date=next_year)) == ExpiryStatus.VALID

    def test_window_is_configurable(self, settings, in_ten_days):
        settings.AGROSTOCK = {'EXPIRY_WARNING_DAYS': 5}

        assert lots.classify(Lot(expiry_date=in_ten_days)) == ExpiryStatus.VALID

    def test_reference_date(self, in_ten_days):
        later = in_ten_days + timedelta(days=1)

        assert lots.classify(Lot(expiry_date=in_ten_days), today=later) == ExpiryStatus.EXPIRED


class TestMarkConsumed:
    """Tests for lots.mark_consumed()."""

    @pytest.fixture
    def lot(self, company, seed):
        return lots.create_lot(company, seed, Decimal('200'), lot_number='L-200')

    def test_consume_after_stock_is_gone(self, company, seed, warehouse, silo, user, lot):
        """Lot fully used across two sectors: consumed, and idempotent afterwards."""
        ledger.adjust(company, seed, warehouse, Decimal('200'), user, lot=lot)
        ledger.transfer(company, seed, warehouse, silo, Decimal('50'), user, lot=lot)
        ledger.adjust(company, seed, warehouse, Decimal('0'), user, lot=lot)
        ledger.adjust(company, seed, silo, Decimal('0'), user, lot=lot)

        consumed = lots.mark_consumed(company, lot, user)

        assert consumed.status == LotStatus.CONSUMED
        assert consumed.consumed_by == user
        consumed_at = consumed.consumed_at

        again = lots.mark_consumed(company, lot, user)
        assert again.status == LotStatus.CONSUMED
        assert again.consumed_at == consumed_at

    def test_lot_with_stock(self, company, seed, silo, user, lot):
        ledger.adjust(company, seed, silo, Decimal('1'), user, lot=lot)

        with pytest.raises(StockError) as exc:
            lots.mark_consumed(company, lot, user)

        assert exc.value.code == 'LOT_STILL_HAS_STOCK'
        assert exc.value.kind == 'invalid_state'

    def test_other_tenant(self, other_company, user, lot):
        with pytest.raises(StockError) as exc:
            lots.mark_consumed(other_company, lot, user)

        assert exc.value.code == 'LOT_NOT_FOUND'

    def test_inbound_reactivates_consumed_lot(self, company, farm, seed, warehouse,
                                              user, lot, today):
        lots.mark_consumed(company, lot, user)

        movements.create_complete(
            company,
            {
                'farm': farm,
                'movement_type': MovementType.INBOUND,
                'movement_date': today,
                'destination_sector': warehouse,
            },
            [{'product': seed, 'lot': lot, 'quantity': 20}],
            user,
        )

        lot.refresh_from_db()
        assert lot.status == LotStatus.ACTIVE
        assert lot.consumed_at is None


class TestLotReports:
    """Tests for statistics(), stock_by_sector() and history()."""

    def test_statistics(self, company, seed, warehouse, silo, user, next_year):
        lot = lots.create_lot(company, seed, Decimal('200'), expiry_date=next_year)
        ledger.adjust(company, seed, warehouse, Decimal('200'), user, lot=lot)
        ledger.transfer(company, seed, warehouse, silo, Decimal('30'), user, lot=lot)
        ledger.adjust(company, seed, warehouse, Decimal('120'), user, lot=lot)

        stats = lots.statistics(company, lot)

        assert stats['current_quantity'] == Decimal('150')
        assert stats['consumed_quantity'] == Decimal('50')
        assert stats['consumed_percent'] == Decimal('25.00')
        assert stats['sectors_with_stock'] == 2
        assert stats['movement_count'] == 3
        assert stats['expiry_status'] == ExpiryStatus.VALID
        assert stats['days_to_expiry'] == 365

    def test_stock_by_sector_and_history(self, company, seed, warehouse, silo, user):
        lot = lots.create_lot(company, seed, Decimal('100'))
        ledger.adjust(company, seed, warehouse, Decimal('100'), user, lot=lot)
        ledger.transfer(company, seed, warehouse, silo, Decimal('100'), user, lot=lot)

        positions = list(lots.stock_by_sector(company, lot))
        assert [p.sector for p in positions] == [silo]

        history = list(lots.history(company, lot))
        assert len(history) == 2
        assert history[0].movement.movement_type == MovementType.TRANSFER
