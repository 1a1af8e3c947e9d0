"""
Accounts Domain Layer
=====================

Contains:
- Actor: request-scoped identity
- Profile, RoleAssignment: stored account data
"""

from complaintdesk.accounts.domain.entities import (
    DEFAULT_PROFILE_NAME,
    Actor,
    Profile,
    RoleAssignment,
)

__all__ = [
    "DEFAULT_PROFILE_NAME",
    "Actor",
    "Profile",
    "RoleAssignment",
]
