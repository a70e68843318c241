"""
Woodledger Adapters.

Implementations of protocols for external systems.
"""

from woodledger.adapters.members import (
    ModelMemberDirectory,
    get_member_directory,
    reset_member_directory,
)
from woodledger.adapters.noop import NoopMemberDirectory

__all__ = [
    "ModelMemberDirectory",
    "NoopMemberDirectory",
    "get_member_directory",
    "reset_member_directory",
]
