"""
Complaints Application Services
===============================

Application services for complaint intake, classification, the student
workflow and admin review.

Orchestrates business logic between domain entities and repositories.
"""

import json
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from complaintdesk.accounts.domain import Actor, Profile
from complaintdesk.complaints.domain import (
    ClassificationPromptBuilder,
    ClassificationResult,
    Complaint,
    ComplaintAccessPolicy,
    SubmissionValidator,
)
from complaintdesk.config import (
    ChangeEventType,
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
)
from complaintdesk.core import (
    LLMConfigurationException,
    LLMException,
    MalformedLLMResponseException,
    PermissionDeniedException,
    ResourceNotFoundException,
)
from complaintdesk.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IComplaintRepository(ABC):
    """Interface for complaint data access."""

    @abstractmethod
    async def create(
        self,
        student_id: UUID,
        title: str,
        description: str,
        category: ComplaintCategory,
        classification: Optional[ClassificationResult],
        complaint_id: Optional[str] = None
    ) -> Complaint:
        """Store a new complaint, assigning a ticket code when none is given."""

    @abstractmethod
    async def get(self, complaint_id: UUID) -> Optional[Complaint]:
        """Get complaint by id."""

    @abstractmethod
    async def list_by_student(self, student_id: UUID) -> List[Complaint]:
        """A student's complaints, newest first."""

    @abstractmethod
    async def list_all(self, status: Optional[ComplaintStatus] = None) -> List[Complaint]:
        """Every complaint, newest first, optionally filtered by status."""

    @abstractmethod
    async def update_fields(self, complaint_id: UUID, **fields: Any) -> Complaint:
        """Set the given columns in one statement."""

    @abstractmethod
    async def count_by_status(self) -> Dict[ComplaintStatus, int]:
        """Complaint counts per status."""

    @abstractmethod
    async def commit(self) -> None:
        """Make pending writes durable."""


class IStudentDirectory(ABC):
    """Looks up student profiles for the admin view."""

    @abstractmethod
    async def get_many(self, student_ids: List[UUID]) -> Dict[UUID, Profile]:
        """Profiles keyed by user id; unknown ids are absent."""


class IChangePublisher(ABC):
    """Announces committed complaint changes."""

    @abstractmethod
    async def publish(self, event: ChangeEventType, complaint: Complaint) -> None:
        """Publish a change for a complaint."""


class ILLMClient(ABC):
    """Interface for LLM operations."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float,
        max_tokens: int,
        tools: Optional[List[dict]] = None,
        tool_choice: Optional[Any] = None,
        operation: str = "chat_completion"
    ) -> Any:
        """Generate chat completion."""


# ========== Classification ==========

class _AnalysisPayload(BaseModel):
    """Shape of the analyze_complaint tool arguments."""
    suggestedCategory: ComplaintCategory
    priority: ComplaintPriority
    priorityScore: float = Field(..., ge=0.0, le=1.0)
    suggestedResponse: str = Field(..., min_length=1)


def _unwrap_json(text: str) -> str:
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


class ClassificationService:
    """
    Service for complaint classification using the LLM.

    The client is optional so that a missing credential surfaces as a
    classification failure after local validation, not at startup.
    """

    def __init__(
        self,
        llm_client: Optional[ILLMClient],
        temperature: float = 0.3,
        max_tokens: int = 800
    ):
        self._llm = llm_client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def classify(
        self,
        title: str,
        description: str,
        category: str
    ) -> ClassificationResult:
        """
        Suggest category, priority and a draft response for a complaint.

        Args:
            title: Complaint title
            description: Complaint description
            category: Category the student picked, used as a hint

        Raises:
            LLMConfigurationException: No LLM credential configured
            LLMRateLimitException: Upstream still rate limited after retries
            LLMQuotaException: Upstream quota or billing exhausted
            MalformedLLMResponseException: No usable structured result
            LLMException: Any other upstream failure
        """
        if self._llm is None:
            raise LLMConfigurationException("LLM API key is not configured")

        start_time = time.perf_counter()

        messages = [
            {"role": "system", "content": ClassificationPromptBuilder.get_system_prompt()},
            {
                "role": "user",
                "content": ClassificationPromptBuilder.build_prompt(title, description, category)
            }
        ]

        response = await self._llm.chat_completion(
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            tools=ClassificationPromptBuilder.build_tools(),
            tool_choice=ClassificationPromptBuilder.build_tool_choice(),
            operation="classification"
        )

        raw = response.tool_arguments or response.content
        if not raw or not raw.strip():
            raise MalformedLLMResponseException("No valid response from AI")

        try:
            payload = _AnalysisPayload.model_validate(json.loads(_unwrap_json(raw)))
            result = ClassificationResult(
                suggested_category=payload.suggestedCategory,
                priority=payload.priority,
                priority_score=payload.priorityScore,
                suggested_response=payload.suggestedResponse,
                model_used=response.model,
                latency_ms=int((time.perf_counter() - start_time) * 1000),
                prompt_tokens=response.prompt_tokens,
                completion_tokens=response.completion_tokens,
                timestamp=datetime.now(timezone.utc)
            )
        except json.JSONDecodeError as e:
            raise MalformedLLMResponseException(f"Failed to parse classification response: {e}") from e
        except (ValidationError, ValueError) as e:
            raise MalformedLLMResponseException(f"Classification response is incomplete: {e}") from e

        logger.info(
            "Complaint classified",
            extra={
                "suggested_category": result.suggested_category.value,
                "priority": result.priority.value,
                "priority_score": result.priority_score,
                "model": result.model_used,
                "latency_ms": result.latency_ms
            }
        )
        return result


# ========== Student Workflow ==========

class ComplaintIntakeService:
    """
    Submission workflow: validate, classify, persist, publish.

    Validation runs before any external call; a classification failure
    stops the submission before anything is written unless
    `requires_classification` is off.
    """

    def __init__(
        self,
        repository: IComplaintRepository,
        classifier: ClassificationService,
        publisher: IChangePublisher,
        validator: Optional[SubmissionValidator] = None,
        requires_classification: bool = True
    ):
        self._repository = repository
        self._classifier = classifier
        self._publisher = publisher
        self._validator = validator or SubmissionValidator()
        self._requires_classification = requires_classification

    async def submit_complaint(
        self,
        actor: Actor,
        title: Optional[str],
        description: Optional[str],
        category: Optional[str]
    ) -> Complaint:
        if not ComplaintAccessPolicy.can_submit(actor):
            raise PermissionDeniedException("Only students can submit complaints")

        submission = self._validator.validate(title, description, category)

        classification: Optional[ClassificationResult] = None
        try:
            with log_latency(logger, "classification", student_id=str(actor.user_id)):
                classification = await self._classifier.classify(
                    submission.title,
                    submission.description,
                    submission.category.value
                )
        except LLMException as e:
            if self._requires_classification:
                logger.warning(
                    "Submission blocked by classification failure",
                    extra={"student_id": str(actor.user_id), "error_type": type(e).__name__}
                )
                raise
            logger.warning(
                "Classification failed, storing complaint without AI fields",
                extra={"student_id": str(actor.user_id), "error_type": type(e).__name__}
            )

        complaint = await self._repository.create(
            student_id=actor.user_id,
            title=submission.title,
            description=submission.description,
            category=submission.category,
            classification=classification
        )
        await self._repository.commit()

        logger.info(
            "Complaint submitted",
            extra={
                "complaint_id": complaint.complaint_id,
                "student_id": str(actor.user_id),
                "priority": complaint.priority.value
            }
        )

        await self._publisher.publish(ChangeEventType.INSERT, complaint)
        return complaint


class StudentComplaintService:
    """A student's view of their own complaints."""

    def __init__(
        self,
        repository: IComplaintRepository,
        publisher: IChangePublisher,
        validator: Optional[SubmissionValidator] = None
    ):
        self._repository = repository
        self._publisher = publisher
        self._validator = validator or SubmissionValidator()

    async def list_own_complaints(self, actor: Actor) -> List[Complaint]:
        return await self._repository.list_by_student(actor.user_id)

    async def get_complaint(self, actor: Actor, complaint_id: UUID) -> Complaint:
        """Owner or admin; anyone else cannot tell the complaint exists."""
        complaint = await self._repository.get(complaint_id)
        if complaint is None or not ComplaintAccessPolicy.can_read(actor, complaint):
            raise ResourceNotFoundException("Complaint", str(complaint_id))
        return complaint

    async def _get_editable(self, actor: Actor, complaint_id: UUID) -> Complaint:
        complaint = await self._repository.get(complaint_id)
        if complaint is None or not actor.owns(complaint.student_id):
            raise ResourceNotFoundException("Complaint", str(complaint_id))
        if not ComplaintAccessPolicy.can_edit_as_owner(actor, complaint):
            raise PermissionDeniedException(
                f"Complaint {complaint.complaint_id} is {complaint.status.value} and can no longer be changed"
            )
        return complaint

    async def edit_complaint(
        self,
        actor: Actor,
        complaint_id: UUID,
        title: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None
    ) -> Complaint:
        """Re-validated edit while Pending; the AI fields stay as first classified."""
        complaint = await self._get_editable(actor, complaint_id)

        submission = self._validator.validate(
            complaint.title if title is None else title,
            complaint.description if description is None else description,
            complaint.category.value if category is None else category
        )

        updated = await self._repository.update_fields(
            complaint.id,
            title=submission.title,
            description=submission.description,
            category=submission.category
        )
        await self._repository.commit()
        await self._publisher.publish(ChangeEventType.UPDATE, updated)
        return updated

    async def withdraw_complaint(self, actor: Actor, complaint_id: UUID) -> Complaint:
        complaint = await self._get_editable(actor, complaint_id)

        updated = await self._repository.update_fields(
            complaint.id,
            status=ComplaintStatus.WITHDRAWN
        )
        await self._repository.commit()

        logger.info(
            "Complaint withdrawn",
            extra={"complaint_id": updated.complaint_id, "student_id": str(actor.user_id)}
        )
        await self._publisher.publish(ChangeEventType.UPDATE, updated)
        return updated


# ========== Admin Workflow ==========

class ComplaintReviewService:
    """
    Admin triage.

    Reviews only ever write status and admin_response; classification is
    never re-run here.
    """

    def __init__(
        self,
        repository: IComplaintRepository,
        directory: IStudentDirectory,
        publisher: IChangePublisher
    ):
        self._repository = repository
        self._directory = directory
        self._publisher = publisher

    def _require_admin(self, actor: Actor) -> None:
        if not ComplaintAccessPolicy.can_review(actor):
            raise PermissionDeniedException("Administrator role required")

    async def list_complaints(
        self,
        actor: Actor,
        status: Optional[ComplaintStatus] = None
    ) -> List[tuple]:
        """(complaint, profile or None) pairs, newest first."""
        self._require_admin(actor)

        complaints = await self._repository.list_all(status)
        profiles = await self._directory.get_many(list({c.student_id for c in complaints}))
        return [(c, profiles.get(c.student_id)) for c in complaints]

    async def review_complaint(
        self,
        actor: Actor,
        complaint_id: UUID,
        status: ComplaintStatus,
        admin_response: Optional[str] = None,
        use_ai_draft: bool = False
    ) -> Complaint:
        self._require_admin(actor)

        complaint = await self._repository.get(complaint_id)
        if complaint is None:
            raise ResourceNotFoundException("Complaint", str(complaint_id))

        response = admin_response.strip() if admin_response else None
        if not response and use_ai_draft:
            response = complaint.ai_suggested_response
        if not response:
            # Keep whatever was already sent
            response = complaint.admin_response

        updated = await self._repository.update_fields(
            complaint.id,
            status=status,
            admin_response=response
        )
        await self._repository.commit()

        logger.info(
            "Complaint reviewed",
            extra={
                "complaint_id": updated.complaint_id,
                "admin_id": str(actor.user_id),
                "from_status": complaint.status.value,
                "to_status": updated.status.value
            }
        )
        await self._publisher.publish(ChangeEventType.UPDATE, updated)
        return updated

    async def stats(self, actor: Actor) -> Dict[str, Any]:
        self._require_admin(actor)

        counts = await self._repository.count_by_status()
        by_status = {s.value: counts.get(s, 0) for s in ComplaintStatus}
        return {"total": sum(by_status.values()), "by_status": by_status}
