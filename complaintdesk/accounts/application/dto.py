"""
Accounts Application DTOs
=========================

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from complaintdesk.config import AppRole


# ========== Request DTOs ==========

class RegisterAccountRequest(BaseModel):
    """Registration hook payload sent by the auth provider."""
    id: UUID = Field(..., description="User id issued by the auth provider")
    email: str = Field(..., min_length=3, max_length=320)
    name: Optional[str] = Field(None, max_length=200)


class ProfileUpdateRequest(BaseModel):
    """Editable profile fields."""
    name: str = Field(..., min_length=1, max_length=200)


# ========== Response DTOs ==========

class ProfileResponse(BaseModel):
    """Profile as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


class MeResponse(BaseModel):
    """The caller's own profile and roles."""
    profile: ProfileResponse
    roles: List[AppRole]
