"""
Complaints Application Layer
============================

Contains:
- Services: classification, intake, student workflow, admin review
- DTOs: API request/response models
- Interfaces: repository, directory, publisher and LLM ports
"""

from complaintdesk.complaints.application.dto import (
    AdminComplaintResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    ChangeEventResponse,
    ChangeFeedResponse,
    ComplaintEditRequest,
    ComplaintResponse,
    ReviewRequest,
    StatsResponse,
    SubmitComplaintRequest,
)
from complaintdesk.complaints.application.services import (
    ClassificationService,
    ComplaintIntakeService,
    ComplaintReviewService,
    IChangePublisher,
    IComplaintRepository,
    ILLMClient,
    IStudentDirectory,
    StudentComplaintService,
)

__all__ = [
    # DTOs
    "AdminComplaintResponse",
    "AnalyzeRequest",
    "AnalyzeResponse",
    "ChangeEventResponse",
    "ChangeFeedResponse",
    "ComplaintEditRequest",
    "ComplaintResponse",
    "ReviewRequest",
    "StatsResponse",
    "SubmitComplaintRequest",
    # Services
    "ClassificationService",
    "ComplaintIntakeService",
    "ComplaintReviewService",
    "StudentComplaintService",
    # Interfaces
    "IChangePublisher",
    "IComplaintRepository",
    "ILLMClient",
    "IStudentDirectory",
]
