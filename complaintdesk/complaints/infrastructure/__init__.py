"""
Complaints Infrastructure Layer
===============================

Contains:
- Models: SQLAlchemy ORM models
- Repositories: complaint and ticket sequence storage
- External: LLM, change feed and profile directory adapters
"""

from complaintdesk.complaints.infrastructure.external import (
    ChangeFeedPublisher,
    LLMClientAdapter,
    ProfileDirectoryAdapter,
)
from complaintdesk.complaints.infrastructure.models import ComplaintModel, TicketSequenceModel
from complaintdesk.complaints.infrastructure.repositories import (
    SQLAlchemyComplaintRepository,
    SQLAlchemyTicketSequenceRepository,
)

__all__ = [
    "ChangeFeedPublisher",
    "LLMClientAdapter",
    "ProfileDirectoryAdapter",
    "ComplaintModel",
    "TicketSequenceModel",
    "SQLAlchemyComplaintRepository",
    "SQLAlchemyTicketSequenceRepository",
]
