"""
Accounts Dependencies
=====================

FastAPI dependencies that authenticate the caller and build the
request-scoped Actor.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.accounts.application import AccountService
from complaintdesk.accounts.domain import Actor
from complaintdesk.accounts.infrastructure import (
    SQLAlchemyProfileRepository,
    SQLAlchemyRoleRepository,
    TokenValidationError,
    decode_access_token,
)
from complaintdesk.config import get_settings
from complaintdesk.core import PermissionDeniedException
from complaintdesk.infrastructure.database import get_session
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


def build_account_service(session: AsyncSession) -> AccountService:
    return AccountService(
        SQLAlchemyProfileRepository(session),
        SQLAlchemyRoleRepository(session)
    )


def get_account_service(db: AsyncSession = Depends(get_session)) -> AccountService:
    return build_account_service(db)


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def authenticate_token(token: Optional[str], service: AccountService) -> Actor:
    """
    Verify a raw token and resolve the Actor behind it.

    Shared by HTTP routes and the change feed websocket.

    Raises:
        TokenValidationError: Missing or invalid token
        PermissionDeniedException: Valid token for an unregistered account
    """
    if not token:
        raise TokenValidationError("Missing bearer token")

    settings = get_settings()
    claims = decode_access_token(token, settings)
    return await service.resolve_actor(
        claims.user_id,
        email=claims.email,
        name=claims.name,
        auto_provision=settings.auto_provision_accounts
    )


async def get_current_actor(
    request: Request,
    service: AccountService = Depends(get_account_service)
) -> Actor:
    """Authenticate the request; 401 on bad token, 403 on unknown account."""
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    try:
        actor = await authenticate_token(_bearer_token(request), service)
    except TokenValidationError as e:
        logger.warning(
            "Authentication failed",
            extra={"correlation_id": correlation_id, "reason": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )
    except PermissionDeniedException as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)

    request.state.user_id = str(actor.user_id)
    return actor


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required"
        )
    return actor
