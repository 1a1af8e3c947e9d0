"""
Accounts Domain Entities
========================

Pure Python business objects for profiles, roles and the acting user.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import FrozenSet, Optional
from uuid import UUID

from complaintdesk.config import AppRole
from complaintdesk.core import ValidationException

DEFAULT_PROFILE_NAME = "User"


@dataclass(frozen=True)
class Actor:
    """
    Identity of the caller for one request.

    Passed explicitly into every service operation; roles come from the
    database, never from token claims.
    """
    user_id: UUID
    email: Optional[str] = None
    roles: FrozenSet[AppRole] = field(default_factory=frozenset)

    def has_role(self, role: AppRole) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return AppRole.ADMIN in self.roles

    @property
    def is_student(self) -> bool:
        return AppRole.STUDENT in self.roles

    def owns(self, owner_id: UUID) -> bool:
        return self.user_id == owner_id


@dataclass
class Profile:
    """Display information for a registered user."""
    id: UUID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime

    def rename(self, name: str) -> None:
        cleaned = name.strip()
        if not cleaned:
            raise ValidationException("Name cannot be empty")
        self.name = cleaned


@dataclass(frozen=True)
class RoleAssignment:
    """A role held by a user."""
    user_id: UUID
    role: AppRole
    created_at: Optional[datetime] = None
