"""
Complaints Interfaces Layer
===========================

Contains:
- Controllers: student, admin and change feed routes
"""

from complaintdesk.complaints.interfaces.controllers import (
    complaints_admin_router,
    complaints_router,
)

__all__ = ["complaints_admin_router", "complaints_router"]
