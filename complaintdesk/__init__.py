"""
Complaint Desk
==============

Student complaint submission and AI-assisted triage service.
"""

__version__ = "1.0.0"
