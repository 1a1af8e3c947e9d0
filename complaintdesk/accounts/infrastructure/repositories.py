"""
Accounts Infrastructure Repositories
====================================

SQLAlchemy implementations of the accounts repositories.
"""

from typing import Dict, Iterable, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.accounts.application import IProfileRepository, IRoleRepository
from complaintdesk.accounts.domain import Profile
from complaintdesk.accounts.infrastructure.models import ProfileModel, UserRoleModel
from complaintdesk.config import AppRole
from complaintdesk.core import ConflictException, RepositoryException


def _to_profile(model: ProfileModel) -> Profile:
    return Profile(
        id=model.id,
        name=model.name,
        email=model.email,
        created_at=model.created_at,
        updated_at=model.updated_at
    )


class SQLAlchemyProfileRepository(IProfileRepository):
    """SQLAlchemy implementation for profiles."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, user_id: UUID) -> Optional[Profile]:
        model = await self._session.get(ProfileModel, user_id)
        return _to_profile(model) if model else None

    async def get_by_email(self, email: str) -> Optional[Profile]:
        stmt = select(ProfileModel).where(ProfileModel.email == email)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return _to_profile(model) if model else None

    async def get_many(self, user_ids: Iterable[UUID]) -> Dict[UUID, Profile]:
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(ProfileModel).where(ProfileModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return {m.id: _to_profile(m) for m in result.scalars().all()}

    async def create(self, user_id: UUID, name: str, email: str) -> Profile:
        model = ProfileModel(id=user_id, name=name, email=email)
        try:
            async with self._session.begin_nested():
                self._session.add(model)
                await self._session.flush()
        except IntegrityError as e:
            raise ConflictException(f"Profile for {user_id} already exists") from e
        return _to_profile(model)

    async def update_name(self, user_id: UUID, name: str) -> Profile:
        model = await self._session.get(ProfileModel, user_id)
        if model is None:
            raise RepositoryException(f"Profile {user_id} not found")
        model.name = name
        await self._session.flush()
        await self._session.refresh(model)
        return _to_profile(model)


class SQLAlchemyRoleRepository(IRoleRepository):
    """SQLAlchemy implementation for role assignments."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_roles(self, user_id: UUID) -> Set[AppRole]:
        stmt = select(UserRoleModel.role).where(UserRoleModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return set(result.scalars().all())

    async def has_role(self, user_id: UUID, role: AppRole) -> bool:
        stmt = select(UserRoleModel.id).where(
            UserRoleModel.user_id == user_id,
            UserRoleModel.role == role
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def assign(self, user_id: UUID, role: AppRole) -> bool:
        if await self.has_role(user_id, role):
            return False
        try:
            async with self._session.begin_nested():
                self._session.add(UserRoleModel(user_id=user_id, role=role))
                await self._session.flush()
        except IntegrityError:
            # Granted concurrently by another transaction
            return False
        return True
