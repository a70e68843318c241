"""
Woodledger Protocols.

Defines interfaces for external system integration.
"""

from woodledger.protocols.actor import Actor
from woodledger.protocols.members import MemberDirectory

__all__ = [
    "Actor",
    "MemberDirectory",
]
