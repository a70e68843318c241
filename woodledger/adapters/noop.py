"""
Noop Member Directory — Stub adapter for development and testing.

Every member id is considered to exist.

Usage in settings.py:
    WOODLEDGER = {
        "MEMBER_DIRECTORY": "woodledger.adapters.noop.NoopMemberDirectory",
    }

WARNING: Do NOT use in production. Distributions would be accepted for
member ids that do not exist.
"""

from __future__ import annotations


class NoopMemberDirectory:
    """No-operation member directory for development and testing."""

    def member_exists(self, member_id: int) -> bool:
        """Always True for a non-null id."""
        return member_id is not None
