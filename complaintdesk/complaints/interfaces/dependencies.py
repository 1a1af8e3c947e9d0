"""
Complaints Dependencies
=======================

Wires repositories, adapters and services per request.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.complaints.application import (
    ClassificationService,
    ComplaintIntakeService,
    ComplaintReviewService,
    StudentComplaintService,
)
from complaintdesk.complaints.infrastructure import (
    ChangeFeedPublisher,
    LLMClientAdapter,
    ProfileDirectoryAdapter,
    SQLAlchemyComplaintRepository,
)
from complaintdesk.config import settings
from complaintdesk.core import LLMConfigurationException
from complaintdesk.infrastructure.database import get_session
from complaintdesk.infrastructure.events import ChangeFeed, get_change_feed
from complaintdesk.infrastructure.llm import ILLMClient, create_llm_client
from complaintdesk.infrastructure.notifications import SlackNotifier, get_operator_notifier
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@lru_cache()
def get_llm_client() -> Optional[ILLMClient]:
    """
    Process-wide LLM client, or None when no credential is configured.

    A missing credential is reported per submission, not at startup.
    """
    try:
        return create_llm_client()
    except LLMConfigurationException as e:
        logger.warning("LLM client not configured", extra={"error": e.message})
        return None


def get_classification_service(
    llm_client: Optional[ILLMClient] = Depends(get_llm_client)
) -> ClassificationService:
    return ClassificationService(
        LLMClientAdapter(llm_client) if llm_client is not None else None,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens
    )


def get_feed() -> ChangeFeed:
    return get_change_feed()


def get_change_publisher(feed: ChangeFeed = Depends(get_feed)) -> ChangeFeedPublisher:
    return ChangeFeedPublisher(feed)


def get_notifier() -> SlackNotifier:
    return get_operator_notifier()


def get_complaint_repository(
    db: AsyncSession = Depends(get_session)
) -> SQLAlchemyComplaintRepository:
    return SQLAlchemyComplaintRepository(db)


def get_intake_service(
    repository: SQLAlchemyComplaintRepository = Depends(get_complaint_repository),
    classifier: ClassificationService = Depends(get_classification_service),
    publisher: ChangeFeedPublisher = Depends(get_change_publisher)
) -> ComplaintIntakeService:
    return ComplaintIntakeService(
        repository,
        classifier,
        publisher,
        requires_classification=settings.intake_requires_classification
    )


def get_student_service(
    repository: SQLAlchemyComplaintRepository = Depends(get_complaint_repository),
    publisher: ChangeFeedPublisher = Depends(get_change_publisher)
) -> StudentComplaintService:
    return StudentComplaintService(repository, publisher)


def get_review_service(
    db: AsyncSession = Depends(get_session),
    repository: SQLAlchemyComplaintRepository = Depends(get_complaint_repository),
    publisher: ChangeFeedPublisher = Depends(get_change_publisher)
) -> ComplaintReviewService:
    return ComplaintReviewService(repository, ProfileDirectoryAdapter(db), publisher)
