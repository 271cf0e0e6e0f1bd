"""
Lot expiry classification — isolated, testable, reusable.

Determines where a lot stands relative to its expiry date:

    - No expiry date           → SEM_VENCIMENTO
    - Expiry on or before today → VENCIDO
    - Expiry within the warning window (EXPIRY_WARNING_DAYS) → VENCENDO
    - Otherwise                → VALIDO
"""

from datetime import date, timedelta

from django.db.models import Q
from django.utils import timezone

from agrostock.conf import agrostock_settings
from agrostock.models.enums import ExpiryStatus


def classify(lot, today: date | None = None) -> ExpiryStatus:
    """
    Classify a lot by expiry date.

    Args:
        lot: Lot instance (needs .expiry_date)
        today: Reference date (None = today in the current timezone)

    Returns:
        ExpiryStatus
    """
    if lot.expiry_date is None:
        return ExpiryStatus.NO_EXPIRY

    today = today or timezone.localdate()
    if lot.expiry_date <= today:
        return ExpiryStatus.EXPIRED

    warning_limit = today + timedelta(days=agrostock_settings.EXPIRY_WARNING_DAYS)
    if lot.expiry_date <= warning_limit:
        return ExpiryStatus.EXPIRING

    return ExpiryStatus.VALID


def days_to_expiry(lot, today: date | None = None) -> int | None:
    """Days until expiry (negative when expired, None without expiry)."""
    if lot.expiry_date is None:
        return None
    today = today or timezone.localdate()
    return (lot.expiry_date - today).days


def expiring_filter(days: int, today: date | None = None, prefix: str = '') -> Q:
    """
    Queryset-level version of VENCENDO: expiry in (today, today + days].

    `prefix` lets callers filter through a relation (e.g. 'lot__').
    """
    today = today or timezone.localdate()
    return Q(**{
        f'{prefix}expiry_date__gt': today,
        f'{prefix}expiry_date__lte': today + timedelta(days=days),
    })


def expired_filter(today: date | None = None, prefix: str = '') -> Q:
    """Queryset-level version of VENCIDO."""
    today = today or timezone.localdate()
    return Q(**{f'{prefix}expiry_date__lte': today})
