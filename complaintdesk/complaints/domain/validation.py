"""
Submission Validation
=====================

Field rules for complaint submissions and owner edits.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from complaintdesk.config import COMPLAINT_CATEGORIES, ComplaintCategory
from complaintdesk.core import SubmissionValidationException

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 20
DESCRIPTION_MAX_LENGTH = 2000


@dataclass(frozen=True)
class ValidatedSubmission:
    """Trimmed, checked complaint fields."""
    title: str
    description: str
    category: ComplaintCategory


class SubmissionValidator:
    """
    Checks title, description and category.

    Every violated field is reported in one exception so the form can show
    all messages at once.
    """

    def validate(
        self,
        title: Optional[str],
        description: Optional[str],
        category: Optional[str]
    ) -> ValidatedSubmission:
        errors: Dict[str, str] = {}

        title = (title or "").strip()
        description = (description or "").strip()
        category = (category or "").strip()

        if len(title) < TITLE_MIN_LENGTH:
            errors["title"] = f"Title must be at least {TITLE_MIN_LENGTH} characters"
        elif len(title) > TITLE_MAX_LENGTH:
            errors["title"] = "Title too long"

        if len(description) < DESCRIPTION_MIN_LENGTH:
            errors["description"] = f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters"
        elif len(description) > DESCRIPTION_MAX_LENGTH:
            errors["description"] = "Description too long"

        if not category:
            errors["category"] = "Please select a category"
        elif category not in COMPLAINT_CATEGORIES:
            errors["category"] = "Please select a valid category"

        if errors:
            raise SubmissionValidationException(errors)

        return ValidatedSubmission(
            title=title,
            description=description,
            category=ComplaintCategory(category)
        )
