"""
Complaints Domain Layer
=======================

Pure business logic for complaints.

Contains:
- Entities: Complaint, ClassificationResult
- Validation: SubmissionValidator
- Policy: ComplaintAccessPolicy
"""

from complaintdesk.complaints.domain.entities import (
    ClassificationPromptBuilder,
    ClassificationResult,
    Complaint,
    TICKET_CODE_PREFIX,
    TICKET_CODE_WIDTH,
    format_ticket_code,
    ticket_code_prefix,
)
from complaintdesk.complaints.domain.policy import ComplaintAccessPolicy
from complaintdesk.complaints.domain.validation import (
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    SubmissionValidator,
    ValidatedSubmission,
)

__all__ = [
    # Entities
    "ClassificationPromptBuilder",
    "ClassificationResult",
    "Complaint",
    "TICKET_CODE_PREFIX",
    "TICKET_CODE_WIDTH",
    "format_ticket_code",
    "ticket_code_prefix",
    # Policy
    "ComplaintAccessPolicy",
    # Validation
    "DESCRIPTION_MAX_LENGTH",
    "DESCRIPTION_MIN_LENGTH",
    "TITLE_MAX_LENGTH",
    "TITLE_MIN_LENGTH",
    "SubmissionValidator",
    "ValidatedSubmission",
]
