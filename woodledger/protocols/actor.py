"""
Actor — the authenticated caller of a ledger operation.

Authentication and role checks happen upstream. The ledger only reads the
resolved capability flags.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Actor:
    """Authenticated caller with its capabilities."""

    user: Any = None
    can_approve: bool = False
    can_deliver: bool = False
    can_write: bool = False

    @property
    def user_id(self):
        return getattr(self.user, 'pk', None)

    @classmethod
    def from_user(cls, user) -> Actor:
        """
        Resolve capabilities from Django permissions.

        - can_approve: woodledger.approve_distribution
        - can_deliver: woodledger.deliver_distribution
        - can_write:   woodledger.add_distribution
        """
        return cls(
            user=user,
            can_approve=user.has_perm('woodledger.approve_distribution'),
            can_deliver=user.has_perm('woodledger.deliver_distribution'),
            can_write=user.has_perm('woodledger.add_distribution'),
        )

    @classmethod
    def system(cls, user=None) -> Actor:
        """Actor with every capability (management commands, data migrations)."""
        return cls(user=user, can_approve=True, can_deliver=True, can_write=True)
