"""
Complaints Application DTOs
===========================

Pydantic models for request/response validation.

Submission and edit fields are plain strings so the domain validator can
report every rule violation with its own message.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from complaintdesk.config import ComplaintCategory, ComplaintPriority, ComplaintStatus


# ========== Request DTOs ==========

class SubmitComplaintRequest(BaseModel):
    """New complaint from a student."""
    title: str = Field("", description="5 to 200 characters")
    description: str = Field("", description="20 to 2000 characters")
    category: str = Field("", description="One of the complaint categories")


class ComplaintEditRequest(BaseModel):
    """Owner edit of a Pending complaint; omitted fields keep their value."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None


class ReviewRequest(BaseModel):
    """Admin review of a complaint."""
    status: ComplaintStatus
    admin_response: Optional[str] = Field(None, max_length=5000)
    use_ai_draft: bool = Field(
        False,
        description="Pre-fill admin_response from the AI draft when none is given"
    )


class AnalyzeRequest(BaseModel):
    """Ad hoc classification request."""
    title: str = ""
    description: str = ""
    category: str = ""


# ========== Response DTOs ==========

class ComplaintResponse(BaseModel):
    """Complaint as returned to its owner or an admin."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    complaint_id: str
    student_id: UUID
    title: str
    description: str
    category: ComplaintCategory
    priority: ComplaintPriority
    status: ComplaintStatus
    ai_suggested_category: Optional[ComplaintCategory] = None
    ai_priority_score: Optional[float] = None
    ai_suggested_response: Optional[str] = None
    admin_response: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class AdminComplaintResponse(ComplaintResponse):
    """Complaint joined with the student's profile."""
    student_name: Optional[str] = None
    student_email: Optional[str] = None


class StatsResponse(BaseModel):
    """Complaint counts for the admin dashboard."""
    total: int
    by_status: Dict[str, int]


class AnalyzeResponse(BaseModel):
    """Classification output in the wire shape the browser client expects."""
    model_config = ConfigDict(populate_by_name=True)

    suggested_category: ComplaintCategory = Field(..., alias="suggestedCategory")
    priority: ComplaintPriority
    priority_score: float = Field(..., alias="priorityScore")
    suggested_response: str = Field(..., alias="suggestedResponse")


class ChangeEventResponse(BaseModel):
    """One change feed entry."""
    cursor: int
    event: str
    table: str
    record_id: str
    payload: Dict[str, Any]
    occurred_at: datetime


class ChangeFeedResponse(BaseModel):
    """Poll result; pass `cursor` back as `after` on the next call."""
    cursor: int
    events: List[ChangeEventResponse]
