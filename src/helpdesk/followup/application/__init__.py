"""
Follow-up Application Layer
============================

Contains:
- FollowupService: the periodic sweep
- IFollowupTicketRepository: ticket access for the sweep
"""

from helpdesk.followup.application.services import FollowupService, IFollowupTicketRepository

__all__ = [
    "FollowupService",
    "IFollowupTicketRepository",
]
