"""
Tests for the admin registrations.
"""

from decimal import Decimal

import pytest
from django.contrib.admin.sites import site

from agrostock import ledger, movements
from agrostock.models import Lot, LotStatus, Movement, MovementStatus, MovementType, StockPosition


pytestmark = pytest.mark.django_db


class TestReadOnlyAdmins:
    """Positions and movements cannot be edited from the admin."""

    def test_position_admin_is_read_only(self, rf, admin_user):
        request = rf.get('/')
        request.user = admin_user
        model_admin = site._registry[StockPosition]

        assert not model_admin.has_add_permission(request)
        assert not model_admin.has_change_permission(request)
        assert not model_admin.has_delete_permission(request)

    def test_position_changelist(self, admin_client, company, seed, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('8'), user)

        response = admin_client.get('/admin/agrostock/stockposition/')

        assert response.status_code == 200

    def test_movement_changelist(self, admin_client, company, seed, warehouse, user):
        ledger.adjust(company, seed, warehouse, Decimal('8'), user)

        response = admin_client.get('/admin/agrostock/movement/')

        assert response.status_code == 200


class TestAdminActions:

    def test_approve_action(self, admin_client, company, farm, seed, warehouse, user, today):
        movement = movements.create_complete(
            company,
            {
                'farm': farm,
                'movement_type': MovementType.INBOUND,
                'movement_date': today,
                'destination_sector': warehouse,
            },
            [{'product': seed, 'quantity': 5}],
            user,
        )

        admin_client.post('/admin/agrostock/movement/', {
            'action': 'approve_movements',
            '_selected_action': [movement.pk],
        })

        movement.refresh_from_db()
        assert movement.status == MovementStatus.APPROVED

    def test_mark_consumed_action(self, admin_client, company, seed):
        lot = Lot.objects.create(product=seed, lot_number='ADM-1', initial_quantity=Decimal('5'))

        admin_client.post('/admin/agrostock/lot/', {
            'action': 'mark_consumed',
            '_selected_action': [lot.pk],
        })

        lot.refresh_from_db()
        assert lot.status == LotStatus.CONSUMED
        assert Movement.objects.count() == 0
