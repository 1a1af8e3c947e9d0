"""
Complaint Access Policy
=======================

Who may read, review and edit a complaint. Pure functions over the Actor;
priority and AI fields play no part in these decisions.
"""

from complaintdesk.accounts.domain import Actor
from complaintdesk.complaints.domain.entities import Complaint


class ComplaintAccessPolicy:
    """Row-level rules for complaints."""

    @staticmethod
    def can_read(actor: Actor, complaint: Complaint) -> bool:
        return actor.owns(complaint.student_id) or actor.is_admin

    @staticmethod
    def can_review(actor: Actor) -> bool:
        """Admins may set status and response on any complaint."""
        return actor.is_admin

    @staticmethod
    def can_submit(actor: Actor) -> bool:
        return actor.is_student

    @staticmethod
    def can_edit_as_owner(actor: Actor, complaint: Complaint) -> bool:
        return actor.owns(complaint.student_id) and complaint.is_pending
