"""
Access Token Validation
=======================

Verifies the HS256 access tokens issued by the hosted auth provider.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

import jwt
from jwt.exceptions import InvalidTokenError

from complaintdesk.config import Settings


class TokenValidationError(Exception):
    """Raised when an access token is missing, malformed or fails verification."""


@dataclass(frozen=True)
class TokenClaims:
    user_id: UUID
    email: Optional[str] = None
    name: Optional[str] = None


def decode_access_token(token: str, settings: Settings) -> TokenClaims:
    """
    Verify signature, expiry and audience, then extract the identity claims.

    Raises:
        TokenValidationError: On any verification failure
    """
    if not settings.auth_jwt_secret:
        raise TokenValidationError("Token verification is not configured")

    try:
        claims: Dict[str, Any] = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options={"verify_exp": True, "verify_aud": True, "require": ["sub"]},
        )
    except InvalidTokenError as exc:
        raise TokenValidationError(f"Invalid token: {exc}") from exc

    try:
        user_id = UUID(str(claims["sub"]))
    except ValueError as exc:
        raise TokenValidationError("Token subject is not a user id") from exc

    metadata = claims.get("user_metadata") or {}
    name = metadata.get("name") if isinstance(metadata, dict) else None

    return TokenClaims(user_id=user_id, email=claims.get("email"), name=name)
