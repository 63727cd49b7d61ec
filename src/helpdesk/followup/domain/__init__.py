"""
Follow-up Domain Layer
======================

Contains:
- Entities: FollowupTicket, FollowupResult, FollowupStage
- FollowupPolicy: pure idle-time stage calculation

No infrastructure dependencies - pure Python business logic.
"""

from helpdesk.followup.domain.entities import FollowupResult, FollowupStage, FollowupTicket
from helpdesk.followup.domain.policy import FollowupPolicy

__all__ = [
    "FollowupPolicy",
    "FollowupResult",
    "FollowupStage",
    "FollowupTicket",
]
