"""
Woodledger Member Adapter — member lookups via the configured directory.

Usage:
    from woodledger.adapters import get_member_directory

    directory = get_member_directory()
    directory.member_exists(42)

Settings:
    WOODLEDGER = {
        "MEMBER_DIRECTORY": "woodledger.adapters.members.ModelMemberDirectory",
        "MEMBER_MODEL": "community.Member",
    }
"""

from __future__ import annotations

import logging
import threading

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured, ValidationError as DjangoValidationError
from django.utils.module_loading import import_string

from woodledger.conf import woodledger_settings
from woodledger.protocols.members import MemberDirectory

logger = logging.getLogger(__name__)


class ModelMemberDirectory:
    """
    Member directory backed by a Django model.

    Checks WOODLEDGER['MEMBER_MODEL'] (defaults to AUTH_USER_MODEL).
    """

    def __init__(self, model_label: str | None = None):
        self.model_label = model_label or woodledger_settings.MEMBER_MODEL

    @property
    def model(self):
        try:
            return apps.get_model(self.model_label)
        except (LookupError, ValueError) as e:
            raise ImproperlyConfigured(
                f"WOODLEDGER['MEMBER_MODEL'] refers to unknown model '{self.model_label}'"
            ) from e

    def member_exists(self, member_id: int) -> bool:
        if member_id is None:
            return False
        try:
            return self.model._default_manager.filter(pk=member_id).exists()
        except (ValueError, TypeError, DjangoValidationError):
            # Not a valid primary key for the member model
            return False


# Cached directory instance
_lock = threading.Lock()
_member_directory: MemberDirectory | None = None


def get_member_directory() -> MemberDirectory:
    """
    Return the configured member directory.

    Raises:
        ImproperlyConfigured: If MEMBER_DIRECTORY is empty or import fails
    """
    global _member_directory

    if _member_directory is None:
        with _lock:
            if _member_directory is None:  # double-checked
                directory_path = woodledger_settings.MEMBER_DIRECTORY

                if not directory_path:
                    raise ImproperlyConfigured(
                        "WOODLEDGER['MEMBER_DIRECTORY'] must be configured. "
                        "Example: 'woodledger.adapters.members.ModelMemberDirectory'"
                    )

                try:
                    directory_class = import_string(directory_path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import member directory '{directory_path}': {e}"
                    ) from e

                directory = directory_class()
                if not isinstance(directory, MemberDirectory):
                    raise ImproperlyConfigured(
                        f"'{directory_path}' does not implement member_exists()"
                    )
                _member_directory = directory
                logger.debug("Loaded member directory: %s", directory_path)

    return _member_directory


def reset_member_directory() -> None:
    """Reset the cached directory. Call after changing WOODLEDGER settings."""
    global _member_directory
    _member_directory = None
