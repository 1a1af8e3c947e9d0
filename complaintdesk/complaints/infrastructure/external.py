"""
Complaints External Service Adapters
====================================

Adapters for the LLM gateway, the change feed and the accounts directory.

Implements the interfaces defined in the application layer using concrete
infrastructure implementations.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.accounts.domain import Profile
from complaintdesk.accounts.infrastructure import SQLAlchemyProfileRepository
from complaintdesk.complaints.application import (
    IChangePublisher,
    ILLMClient,
    IStudentDirectory,
)
from complaintdesk.complaints.domain import Complaint
from complaintdesk.config import ChangeEventType
from complaintdesk.infrastructure.events import ChangeFeed, get_change_feed
from complaintdesk.infrastructure.llm import ChatCompletionResult
from complaintdesk.infrastructure.llm import ILLMClient as InfrastructureLLMClient

COMPLAINTS_TABLE = "complaints"


class LLMClientAdapter(ILLMClient):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements the application layer ILLMClient interface.
    """

    def __init__(self, client: InfrastructureLLMClient):
        self._client = client

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 800,
        tools: Optional[List[dict]] = None,
        tool_choice: Optional[Any] = None,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""
        return await self._client.chat_completion(
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            tools=tools,
            tool_choice=tool_choice,
            operation=operation
        )


class ChangeFeedPublisher(IChangePublisher):
    """Publishes complaint changes onto the in-process change feed."""

    def __init__(self, feed: Optional[ChangeFeed] = None):
        self._feed = feed or get_change_feed()

    async def publish(self, event: ChangeEventType, complaint: Complaint) -> None:
        await self._feed.publish(
            event=event.value,
            table=COMPLAINTS_TABLE,
            record_id=str(complaint.id),
            owner_id=str(complaint.student_id),
            payload={
                "complaint_id": complaint.complaint_id,
                "student_id": str(complaint.student_id),
                "status": complaint.status.value,
            }
        )


class ProfileDirectoryAdapter(IStudentDirectory):
    """Reads student profiles from the accounts module."""

    def __init__(self, session: AsyncSession):
        self._profiles = SQLAlchemyProfileRepository(session)

    async def get_many(self, student_ids: List[UUID]) -> Dict[UUID, Profile]:
        return await self._profiles.get_many(student_ids)
