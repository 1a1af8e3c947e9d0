"""
Accounts Infrastructure Layer
=============================

Database models, repositories and token verification.
"""

from complaintdesk.accounts.infrastructure.models import ProfileModel, UserRoleModel
from complaintdesk.accounts.infrastructure.repositories import (
    SQLAlchemyProfileRepository,
    SQLAlchemyRoleRepository,
)
from complaintdesk.accounts.infrastructure.tokens import (
    TokenClaims,
    TokenValidationError,
    decode_access_token,
)

__all__ = [
    "ProfileModel",
    "UserRoleModel",
    "SQLAlchemyProfileRepository",
    "SQLAlchemyRoleRepository",
    "TokenClaims",
    "TokenValidationError",
    "decode_access_token",
]
