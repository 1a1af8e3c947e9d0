"""
Accounts Application Services
=============================

Registration, actor resolution and profile access.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set
from uuid import UUID

from complaintdesk.accounts.domain import DEFAULT_PROFILE_NAME, Actor, Profile
from complaintdesk.config import AppRole
from complaintdesk.core import (
    ConflictException,
    PermissionDeniedException,
    ResourceNotFoundException,
)
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IProfileRepository(ABC):
    """Interface for profile data access."""

    @abstractmethod
    async def get(self, user_id: UUID) -> Optional[Profile]:
        """Get profile by user id."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Profile]:
        """Get profile by email."""

    @abstractmethod
    async def get_many(self, user_ids: Iterable[UUID]) -> Dict[UUID, Profile]:
        """Get several profiles keyed by user id."""

    @abstractmethod
    async def create(self, user_id: UUID, name: str, email: str) -> Profile:
        """Create a profile."""

    @abstractmethod
    async def update_name(self, user_id: UUID, name: str) -> Profile:
        """Change the display name."""


class IRoleRepository(ABC):
    """Interface for role assignment data access."""

    @abstractmethod
    async def list_roles(self, user_id: UUID) -> Set[AppRole]:
        """Roles held by the user."""

    @abstractmethod
    async def has_role(self, user_id: UUID, role: AppRole) -> bool:
        """Check a single role."""

    @abstractmethod
    async def assign(self, user_id: UUID, role: AppRole) -> bool:
        """Grant a role; False if already held."""


# ========== Application Services ==========

class AccountService:
    """
    Account operations.

    Registration writes the profile and the default role through repositories
    sharing one session, so both rows commit or neither does.
    """

    def __init__(self, profiles: IProfileRepository, roles: IRoleRepository):
        self._profiles = profiles
        self._roles = roles

    async def register_account(
        self,
        user_id: UUID,
        email: str,
        name: Optional[str] = None
    ) -> Profile:
        """Create exactly one profile and one student role for a new account."""
        if await self._profiles.get(user_id) is not None:
            raise ConflictException(f"Account {user_id} is already registered")
        if await self._profiles.get_by_email(email) is not None:
            raise ConflictException(f"Email {email} is already registered")

        display_name = (name or "").strip() or DEFAULT_PROFILE_NAME
        profile = await self._profiles.create(user_id, display_name, email)
        await self._roles.assign(user_id, AppRole.STUDENT)

        logger.info("Account registered", extra={"user_id": str(user_id)})
        return profile

    async def resolve_actor(
        self,
        user_id: UUID,
        email: Optional[str] = None,
        name: Optional[str] = None,
        auto_provision: bool = False
    ) -> Actor:
        """
        Build the Actor for an authenticated user.

        Raises:
            PermissionDeniedException: Unknown account and provisioning disabled
        """
        roles = await self._roles.list_roles(user_id)

        if not roles:
            profile = await self._profiles.get(user_id)
            if profile is None and auto_provision and email:
                await self.register_account(user_id, email, name)
                roles = {AppRole.STUDENT}
            else:
                raise PermissionDeniedException("Account is not registered")

        return Actor(user_id=user_id, email=email, roles=frozenset(roles))

    async def get_profile(self, actor: Actor, user_id: UUID) -> Profile:
        """Owner or admin only; anyone else gets not-found."""
        if not (actor.owns(user_id) or actor.is_admin):
            raise ResourceNotFoundException("Profile", str(user_id))

        profile = await self._profiles.get(user_id)
        if profile is None:
            raise ResourceNotFoundException("Profile", str(user_id))
        return profile

    async def update_profile(self, actor: Actor, user_id: UUID, name: str) -> Profile:
        profile = await self.get_profile(actor, user_id)
        profile.rename(name)
        return await self._profiles.update_name(user_id, profile.name)

    async def list_roles(self, user_id: UUID) -> Set[AppRole]:
        return await self._roles.list_roles(user_id)

    async def grant_role(self, user_id: UUID, role: AppRole) -> bool:
        """Operator action; returns False when the role was already held."""
        if await self._profiles.get(user_id) is None:
            raise ResourceNotFoundException("Profile", str(user_id))

        granted = await self._roles.assign(user_id, role)
        logger.info(
            "Role granted" if granted else "Role already held",
            extra={"user_id": str(user_id), "role": role.value}
        )
        return granted
