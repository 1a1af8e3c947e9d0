"""
Accounts Application Layer
==========================

Contains:
- Services: registration, actor resolution, profile access
- DTOs: API request/response models
"""

from complaintdesk.accounts.application.dto import (
    MeResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RegisterAccountRequest,
)
from complaintdesk.accounts.application.services import (
    AccountService,
    IProfileRepository,
    IRoleRepository,
)

__all__ = [
    # DTOs
    "MeResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "RegisterAccountRequest",
    # Services
    "AccountService",
    # Repository Interfaces
    "IProfileRepository",
    "IRoleRepository",
]
