"""
Complaints Domain Entities
==========================

Domain entities for the complaints module.

Contains pure Python business objects for complaints, their AI
classification, and the ticket code format.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from complaintdesk.config import (
    COMPLAINT_CATEGORIES,
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
)

TICKET_CODE_PREFIX = "CMP"
TICKET_CODE_WIDTH = 3


def ticket_code_prefix(year: int, prefix: str = TICKET_CODE_PREFIX) -> str:
    """Prefix shared by every ticket code issued in `year`, e.g. 'CMP-2025-'."""
    return f"{prefix}-{year}-"


def format_ticket_code(
    year: int,
    sequence: int,
    prefix: str = TICKET_CODE_PREFIX,
    width: int = TICKET_CODE_WIDTH
) -> str:
    """
    Human-facing ticket code.

    The sequence is zero-padded to `width` digits and simply grows wider
    past that, so CMP-2025-999 is followed by CMP-2025-1000.
    """
    if sequence < 1:
        raise ValueError("Ticket sequence starts at 1")
    return f"{ticket_code_prefix(year, prefix)}{sequence:0{width}d}"


@dataclass
class ClassificationResult:
    """
    Result of complaint classification.

    Advisory only: written once when the complaint is created.
    """
    suggested_category: ComplaintCategory
    priority: ComplaintPriority
    priority_score: float  # 0.0 to 1.0
    suggested_response: str
    model_used: str
    latency_ms: int
    prompt_tokens: int = 0
    completion_tokens: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate classification result."""
        if not 0.0 <= self.priority_score <= 1.0:
            raise ValueError("Priority score must be between 0 and 1")
        if not self.suggested_response or not self.suggested_response.strip():
            raise ValueError("Suggested response cannot be empty")
        self.priority_score = round(float(self.priority_score), 2)


@dataclass
class Complaint:
    """
    Complaint entity.

    student_id and complaint_id never change after creation; AI fields are
    never touched after creation either.
    """
    id: UUID
    complaint_id: str
    student_id: UUID
    title: str
    description: str
    category: ComplaintCategory
    priority: ComplaintPriority = ComplaintPriority.MEDIUM
    status: ComplaintStatus = ComplaintStatus.PENDING
    ai_suggested_category: Optional[ComplaintCategory] = None
    ai_priority_score: Optional[float] = None
    ai_suggested_response: Optional[str] = None
    admin_response: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ComplaintStatus.PENDING

    @property
    def has_ai_draft(self) -> bool:
        return bool(self.ai_suggested_response)


class ClassificationPromptBuilder:
    """
    Builds the classification request: prompts plus the forced tool call.

    All prompt logic in one place.
    """

    TOOL_NAME = "analyze_complaint"

    SYSTEM_PROMPT = """You are an AI assistant for a student complaint management system. Analyze complaints and provide:
1. Category verification/suggestion (Infrastructure, Faculty, Curriculum, Administration, Facilities, Other)
2. Priority level (Low, Medium, High) with confidence score (0-1)
3. Professional draft response for admin

Be empathetic, professional, and solution-oriented."""

    @classmethod
    def build_prompt(cls, title: str, description: str, category: str) -> str:
        """Build the user prompt from the submission."""
        return f"""Analyze this complaint:
Title: {title}
Description: {description}
Selected Category: {category}

Provide JSON response with: suggestedCategory, priority, priorityScore, suggestedResponse"""

    @classmethod
    def get_system_prompt(cls) -> str:
        return cls.SYSTEM_PROMPT

    @classmethod
    def build_tools(cls) -> list:
        """Function schema the model is forced to call."""
        return [
            {
                "type": "function",
                "function": {
                    "name": cls.TOOL_NAME,
                    "description": (
                        "Analyze a student complaint and provide categorization, "
                        "priority, and response suggestion"
                    ),
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "suggestedCategory": {
                                "type": "string",
                                "enum": list(COMPLAINT_CATEGORIES),
                            },
                            "priority": {
                                "type": "string",
                                "enum": [p.value for p in ComplaintPriority],
                            },
                            "priorityScore": {
                                "type": "number",
                                "description": "Confidence score between 0 and 1",
                            },
                            "suggestedResponse": {
                                "type": "string",
                                "description": "Professional draft response for admin to use or edit",
                            },
                        },
                        "required": [
                            "suggestedCategory",
                            "priority",
                            "priorityScore",
                            "suggestedResponse",
                        ],
                        "additionalProperties": False,
                    },
                },
            }
        ]

    @classmethod
    def build_tool_choice(cls) -> dict:
        return {"type": "function", "function": {"name": cls.TOOL_NAME}}
