"""
Complaints Infrastructure Repositories
======================================

SQLAlchemy implementations of the complaint repositories.

Ticket codes come from a per-year counter row bumped with a single
UPDATE ... RETURNING, so concurrent submissions are serialized by the row
lock. The unique constraint on complaint_id is the second guard: a
collision re-allocates inside a savepoint.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from complaintdesk.complaints.application import IComplaintRepository
from complaintdesk.complaints.domain import (
    ClassificationResult,
    Complaint,
    format_ticket_code,
    ticket_code_prefix,
)
from complaintdesk.complaints.infrastructure.models import ComplaintModel, TicketSequenceModel
from complaintdesk.config import (
    ComplaintCategory,
    ComplaintPriority,
    ComplaintStatus,
    settings,
)
from complaintdesk.core import ConflictException, RepositoryException
from complaintdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Columns a review or owner edit may change
MUTABLE_FIELDS = frozenset({"title", "description", "category", "status", "admin_response"})


def _to_entity(model: ComplaintModel) -> Complaint:
    return Complaint(
        id=model.id,
        complaint_id=model.complaint_id,
        student_id=model.student_id,
        title=model.title,
        description=model.description,
        category=model.category,
        priority=model.priority,
        status=model.status,
        ai_suggested_category=model.ai_suggested_category,
        ai_priority_score=model.ai_priority_score,
        ai_suggested_response=model.ai_suggested_response,
        admin_response=model.admin_response,
        created_at=model.created_at,
        updated_at=model.updated_at
    )


def _is_ticket_code_collision(error: IntegrityError) -> bool:
    return "complaint_id" in str(error.orig)


class SQLAlchemyTicketSequenceRepository:
    """Allocates ticket sequence numbers per calendar year."""

    def __init__(self, session: AsyncSession, prefix: Optional[str] = None):
        self._session = session
        self._prefix = prefix or settings.ticket_code_prefix

    async def _bump(self, year: int) -> Optional[int]:
        stmt = (
            update(TicketSequenceModel)
            .where(TicketSequenceModel.year == year)
            .values(last_value=TicketSequenceModel.last_value + 1)
            .returning(TicketSequenceModel.last_value)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _seed(self, year: int) -> None:
        """Start the counter at the number of codes already issued this year."""
        prefix = ticket_code_prefix(year, self._prefix)
        stmt = select(func.count(ComplaintModel.id)).where(
            ComplaintModel.complaint_id.like(f"{prefix}%")
        )
        existing = (await self._session.execute(stmt)).scalar_one()

        try:
            async with self._session.begin_nested():
                self._session.add(TicketSequenceModel(year=year, last_value=existing))
                await self._session.flush()
        except IntegrityError:
            # Another transaction seeded the year first
            logger.debug("Ticket sequence already seeded", extra={"year": year})

    async def next_value(self, year: int) -> int:
        value = await self._bump(year)
        if value is None:
            await self._seed(year)
            value = await self._bump(year)
        if value is None:
            raise RepositoryException(f"Ticket sequence for {year} is unavailable")
        return value


class SQLAlchemyComplaintRepository(IComplaintRepository):
    """SQLAlchemy implementation for complaints."""

    def __init__(
        self,
        session: AsyncSession,
        sequences: Optional[SQLAlchemyTicketSequenceRepository] = None,
        max_attempts: Optional[int] = None
    ):
        self._session = session
        self._sequences = sequences or SQLAlchemyTicketSequenceRepository(session)
        self._max_attempts = max_attempts or settings.ticket_code_max_attempts

    async def _allocate_code(self, year: int) -> str:
        sequence = await self._sequences.next_value(year)
        return format_ticket_code(
            year,
            sequence,
            prefix=settings.ticket_code_prefix,
            width=settings.ticket_code_width
        )

    async def create(
        self,
        student_id: UUID,
        title: str,
        description: str,
        category: ComplaintCategory,
        classification: Optional[ClassificationResult],
        complaint_id: Optional[str] = None
    ) -> Complaint:
        """
        Insert a complaint.

        Raises:
            ConflictException: A supplied complaint_id is already taken
            RepositoryException: No free ticket code after all attempts
        """
        year = datetime.now(timezone.utc).year

        for attempt in range(1, self._max_attempts + 1):
            code = complaint_id or await self._allocate_code(year)

            model = ComplaintModel(
                complaint_id=code,
                student_id=student_id,
                title=title,
                description=description,
                category=category,
                status=ComplaintStatus.PENDING,
                priority=classification.priority if classification else ComplaintPriority.MEDIUM,
                ai_suggested_category=classification.suggested_category if classification else None,
                ai_priority_score=classification.priority_score if classification else None,
                ai_suggested_response=classification.suggested_response if classification else None
            )

            try:
                async with self._session.begin_nested():
                    self._session.add(model)
                    await self._session.flush()
            except IntegrityError as e:
                if not _is_ticket_code_collision(e):
                    raise RepositoryException(f"Failed to store complaint: {e.orig}") from e
                if complaint_id:
                    raise ConflictException(f"Ticket code {complaint_id} is already in use") from e
                logger.warning(
                    "Ticket code collision, allocating another",
                    extra={"complaint_id": code, "attempt": attempt}
                )
                continue

            return _to_entity(model)

        raise RepositoryException(
            f"Could not allocate a free ticket code after {self._max_attempts} attempts"
        )

    async def get(self, complaint_id: UUID) -> Optional[Complaint]:
        model = await self._session.get(ComplaintModel, complaint_id)
        return _to_entity(model) if model else None

    async def list_by_student(self, student_id: UUID) -> List[Complaint]:
        stmt = (
            select(ComplaintModel)
            .where(ComplaintModel.student_id == student_id)
            .order_by(ComplaintModel.created_at.desc(), ComplaintModel.complaint_id.desc())
        )
        result = await self._session.execute(stmt)
        return [_to_entity(m) for m in result.scalars().all()]

    async def list_all(self, status: Optional[ComplaintStatus] = None) -> List[Complaint]:
        stmt = select(ComplaintModel).order_by(
            ComplaintModel.created_at.desc(), ComplaintModel.complaint_id.desc()
        )
        if status is not None:
            stmt = stmt.where(ComplaintModel.status == status)
        result = await self._session.execute(stmt)
        return [_to_entity(m) for m in result.scalars().all()]

    async def update_fields(self, complaint_id: UUID, **fields: Any) -> Complaint:
        """
        Write the given columns in one UPDATE.

        Owner, ticket code and AI columns are not writable here.
        """
        illegal = set(fields) - MUTABLE_FIELDS
        if illegal:
            raise RepositoryException(f"Fields cannot be updated: {sorted(illegal)}")

        model = await self._session.get(ComplaintModel, complaint_id)
        if model is None:
            raise RepositoryException(f"Complaint {complaint_id} not found")

        for name, value in fields.items():
            setattr(model, name, value)
        await self._session.flush()
        await self._session.refresh(model)

        return _to_entity(model)

    async def count_by_status(self) -> Dict[ComplaintStatus, int]:
        stmt = select(
            ComplaintModel.status,
            func.count(ComplaintModel.id)
        ).group_by(ComplaintModel.status)
        result = await self._session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def commit(self) -> None:
        await self._session.commit()
