"""Django app configuration for Woodledger."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class WoodLedgerConfig(AppConfig):
    """Configuration for Woodledger app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "woodledger"
    verbose_name = _("Wood Stock Ledger")
