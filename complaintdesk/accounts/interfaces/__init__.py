"""
Accounts Interfaces Layer
=========================

Controllers and request dependencies for the accounts module.
"""

from complaintdesk.accounts.interfaces.controllers import accounts_router
from complaintdesk.accounts.interfaces.dependencies import (
    authenticate_token,
    build_account_service,
    get_current_actor,
    require_admin,
)

__all__ = [
    "accounts_router",
    "authenticate_token",
    "build_account_service",
    "get_current_actor",
    "require_admin",
]
