"""
Accounts Controllers (API Routes)
=================================

FastAPI routes for registration and profiles.
"""

import hmac
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from complaintdesk.accounts.application import (
    AccountService,
    MeResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterAccountRequest,
)
from complaintdesk.accounts.domain import Actor
from complaintdesk.accounts.interfaces.dependencies import (
    get_account_service,
    get_current_actor,
)
from complaintdesk.config import get_settings
from complaintdesk.core import ApplicationException
from complaintdesk.shared.api.errors import to_http_exception
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/accounts", tags=["Accounts"])


def _verify_webhook_secret(provided: Optional[str]) -> None:
    expected = get_settings().auth_webhook_secret
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Registration hook is not configured"
        )
    if not provided or not hmac.compare_digest(provided, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret"
        )


@router.post(
    "/register",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new account",
    description="""
    Called by the auth provider when a user signs up.

    Creates the profile (name defaults to "User") and the student role in
    one transaction. Registering the same user twice returns 409.
    """,
    responses={
        401: {"description": "Missing or wrong webhook secret"},
        409: {"description": "Account already registered"}
    }
)
async def register_account(
    request: Request,
    payload: RegisterAccountRequest,
    x_auth_webhook_secret: Optional[str] = Header(None),
    service: AccountService = Depends(get_account_service)
):
    _verify_webhook_secret(x_auth_webhook_secret)

    try:
        profile = await service.register_account(payload.id, payload.email, payload.name)
    except ApplicationException as e:
        logger.info(
            "Registration rejected",
            extra={
                "correlation_id": getattr(request.state, "correlation_id", "unknown"),
                "reason": e.message
            }
        )
        raise to_http_exception(e)

    return ProfileResponse.model_validate(profile)


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current user's profile and roles"
)
async def get_me(
    actor: Actor = Depends(get_current_actor),
    service: AccountService = Depends(get_account_service)
):
    try:
        profile = await service.get_profile(actor, actor.user_id)
    except ApplicationException as e:
        raise to_http_exception(e)

    roles = sorted(await service.list_roles(actor.user_id), key=lambda r: r.value)
    return MeResponse(profile=ProfileResponse.model_validate(profile), roles=roles)


@router.get(
    "/profiles/{user_id}",
    response_model=ProfileResponse,
    summary="Get a profile (owner or admin)"
)
async def get_profile(
    user_id: UUID,
    actor: Actor = Depends(get_current_actor),
    service: AccountService = Depends(get_account_service)
):
    try:
        profile = await service.get_profile(actor, user_id)
    except ApplicationException as e:
        raise to_http_exception(e)
    return ProfileResponse.model_validate(profile)


@router.patch(
    "/profiles/{user_id}",
    response_model=ProfileResponse,
    summary="Update a profile (owner or admin)"
)
async def update_profile(
    user_id: UUID,
    payload: ProfileUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: AccountService = Depends(get_account_service)
):
    try:
        profile = await service.update_profile(actor, user_id, payload.name)
    except ApplicationException as e:
        raise to_http_exception(e)
    return ProfileResponse.model_validate(profile)


# Export router for inclusion in main app
accounts_router = router
