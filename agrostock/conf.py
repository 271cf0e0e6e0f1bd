"""
Agrostock configuration.

Usage in settings.py:
    AGROSTOCK = {
        "EXPIRY_WARNING_DAYS": 30,
        "STRICT_RELEASE": False,
        "ALLOW_SELF_APPROVAL": False,
        "ALLOW_CANCEL_CONFIRMED": False,
        "MAX_IDENTIFIER_RETRIES": 3,
    }
"""

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings


@dataclass
class AgrostockSettings:
    """Agrostock configuration settings."""

    # Lots expiring within this many days are classified VENCENDO
    EXPIRY_WARNING_DAYS: int = 30

    # Releasing more than reserved: False clamps at zero, True raises
    STRICT_RELEASE: bool = False

    # Allow the creator of a movement to approve it
    ALLOW_SELF_APPROVAL: bool = False

    # Allow cancelling movements already confirmed (reverses ledger effects)
    ALLOW_CANCEL_CONFIRMED: bool = False

    # Attempts for auto-generated identifiers (document and lot numbers)
    MAX_IDENTIFIER_RETRIES: int = 3

    # Product categories considered by the low stock report
    LOW_STOCK_CATEGORIES: list[str] = field(default_factory=lambda: ['input'])

    # Precision of weighted average unit cost
    COST_DECIMAL_PLACES: int = 4


def get_agrostock_settings() -> AgrostockSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "AGROSTOCK", {})
    return AgrostockSettings(**{
        k: v for k, v in user_settings.items()
        if k in AgrostockSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_agrostock_settings(), name)


agrostock_settings = _LazySettings()
