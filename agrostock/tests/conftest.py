"""
Pytest fixtures for Agrostock tests.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from agrostock.models import Company, Farm, Product, ProductCategory, Sector, SectorKind


User = get_user_model()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='operador',
        password='testpass123'
    )


@pytest.fixture
def approver(db):
    """A second user, allowed to approve movements created by `user`."""
    return User.objects.create_user(
        username='gerente',
        password='testpass123'
    )


@pytest.fixture
def company(db):
    """Tenant under test."""
    return Company.objects.create(name='Agro Vale Verde', document='12345678000199')


@pytest.fixture
def farm(company):
    return Farm.objects.create(company=company, name='Fazenda Boa Vista')


@pytest.fixture
def warehouse(farm):
    """Main warehouse (armazém)."""
    return Sector.objects.create(farm=farm, name='Armazém Central', kind=SectorKind.WAREHOUSE)


@pytest.fixture
def silo(farm):
    return Sector.objects.create(
        farm=farm,
        name='Silo 1',
        kind=SectorKind.SILO,
        max_capacity=Decimal('1000'),
        capacity_unit='sc',
    )


@pytest.fixture
def seed(company):
    """Input product with min/max thresholds."""
    return Product.objects.create(
        company=company,
        name='Semente de Soja',
        internal_code='SOJ01',
        category=ProductCategory.INPUT,
        unit='kg',
        minimum_stock=Decimal('10'),
        maximum_stock=Decimal('500'),
    )


@pytest.fixture
def fertilizer(company):
    """Input product without thresholds."""
    return Product.objects.create(
        company=company,
        name='Adubo NPK',
        internal_code='NPK',
        category=ProductCategory.INPUT,
        unit='kg',
    )


@pytest.fixture
def grain(company):
    """Harvested produce."""
    return Product.objects.create(
        company=company,
        name='Milho em grão',
        category=ProductCategory.PRODUCE,
        unit='sc',
    )


# ══════════════════════════════════════════════════════════════
# SECOND TENANT
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def other_company(db):
    return Company.objects.create(name='Fazendas Serra Azul')


@pytest.fixture
def other_farm(other_company):
    return Farm.objects.create(company=other_company, name='Fazenda Serra')


@pytest.fixture
def other_sector(other_farm):
    return Sector.objects.create(farm=other_farm, name='Galpão')


@pytest.fixture
def other_product(other_company):
    return Product.objects.create(company=other_company, name='Herbicida', unit='l')


# ══════════════════════════════════════════════════════════════
# DATES
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def today():
    """Return today's date in the active timezone."""
    return timezone.localdate()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


@pytest.fixture
def in_ten_days(today):
    return today + timedelta(days=10)


@pytest.fixture
def next_year(today):
    return today + timedelta(days=365)


@pytest.fixture
def past_date():
    return date(2020, 1, 1)
