"""
Woodledger configuration.

Usage in settings.py:
    WOODLEDGER = {
        "MEMBER_DIRECTORY": "woodledger.adapters.members.ModelMemberDirectory",
        "MEMBER_MODEL": "community.Member",
        "DEFAULT_MINIMUM_THRESHOLD": "10",
        "EXPIRING_WITHIN_DAYS": 30,
        "STATUS_REFRESH_BATCH_SIZE": 200,
        "RECEIPT_PREFIX": "DFG",
        "REJECT_EXPIRED_REQUESTS": True,
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class WoodLedgerSettings:
    """Woodledger configuration settings."""

    # Member directory backend (dotted path)
    MEMBER_DIRECTORY: str = "woodledger.adapters.members.ModelMemberDirectory"

    # Model checked by ModelMemberDirectory ("app_label.Model", empty = AUTH_USER_MODEL)
    MEMBER_MODEL: str = ""

    # Threshold applied when intake() is not given one
    DEFAULT_MINIMUM_THRESHOLD: Decimal = Decimal('10')

    # Window used by the expiring-stock report
    EXPIRING_WITHIN_DAYS: int = 30

    # Batch size for refresh_statuses processing
    STATUS_REFRESH_BATCH_SIZE: int = 200

    # Prefix of generated receipt numbers
    RECEIPT_PREFIX: str = "DFG"

    # Refuse new requests against expired stock
    REJECT_EXPIRED_REQUESTS: bool = True


def get_woodledger_settings() -> WoodLedgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "WOODLEDGER", {})
    conf = WoodLedgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in WoodLedgerSettings.__dataclass_fields__
    })
    conf.DEFAULT_MINIMUM_THRESHOLD = Decimal(str(conf.DEFAULT_MINIMUM_THRESHOLD))
    if not conf.MEMBER_MODEL:
        conf.MEMBER_MODEL = settings.AUTH_USER_MODEL
    return conf


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_woodledger_settings(), name)


woodledger_settings = _LazySettings()
