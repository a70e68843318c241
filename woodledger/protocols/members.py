"""
Member Directory Protocol — Interface for member existence checks.

Woodledger defines this protocol; the host project's membership app
implements it (or uses ModelMemberDirectory).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MemberDirectory(Protocol):
    """
    Protocol for resolving members referenced by distributions.

    Distributions store only the member's id, so the ledger never reads
    member records beyond asking whether one exists.
    """

    def member_exists(self, member_id: int) -> bool:
        """
        Check if a member exists.

        Args:
            member_id: Primary key of the member

        Returns:
            True if the member exists
        """
        ...
