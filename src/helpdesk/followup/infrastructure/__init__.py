"""
Follow-up Infrastructure Layer
===============================

- Repositories: waiting-ticket queries
- External: scheduler and service wiring
"""

from helpdesk.followup.infrastructure.repositories import SQLAlchemyFollowupTicketRepository
from helpdesk.followup.infrastructure.external import FollowupScheduler, build_followup_service

__all__ = [
    "SQLAlchemyFollowupTicketRepository",
    "FollowupScheduler",
    "build_followup_service",
]
