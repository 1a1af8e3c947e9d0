"""
Complaints Infrastructure Models
================================

SQLAlchemy ORM models for the complaints module.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from complaintdesk.config import ComplaintCategory, ComplaintPriority, ComplaintStatus
from complaintdesk.infrastructure.database import Base, enum_type


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Shared by two columns so PostgreSQL sees one type
_category_type = enum_type(ComplaintCategory, "complaint_category")


class ComplaintModel(Base):
    """
    Database model for the Complaint entity.

    `complaint_id` holds the human-facing ticket code.
    """
    __tablename__ = "complaints"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Business identifier
    complaint_id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    # Owner
    student_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Student-entered content
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ComplaintCategory] = mapped_column(
        _category_type, nullable=False
    )

    # Classification (advisory, written once)
    ai_suggested_category: Mapped[Optional[ComplaintCategory]] = mapped_column(
        _category_type, nullable=True
    )
    priority: Mapped[ComplaintPriority] = mapped_column(
        enum_type(ComplaintPriority, "complaint_priority"),
        nullable=False,
        default=ComplaintPriority.MEDIUM
    )
    ai_priority_score: Mapped[Optional[float]] = mapped_column(
        Numeric(3, 2, asdecimal=False), nullable=True
    )
    ai_suggested_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Triage
    status: Mapped[ComplaintStatus] = mapped_column(
        enum_type(ComplaintStatus, "complaint_status"),
        nullable=False,
        default=ComplaintStatus.PENDING,
        index=True
    )
    admin_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )


class TicketSequenceModel(Base):
    """Per-year counter behind ticket codes."""
    __tablename__ = "ticket_sequences"

    year: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
