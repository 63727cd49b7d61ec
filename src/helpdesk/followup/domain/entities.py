"""
Follow-up Domain Entities
=========================

Tickets waiting on the customer, as seen by the follow-up sweep, and the
sweep's outcome.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class FollowupStage(str, Enum):
    """What the sweep does to one ticket on this run."""
    NONE = "none"
    REMINDER = "reminder"
    AUTO_CLOSE_WARNING = "auto_close_warning"
    AUTO_CLOSED = "auto_closed"


@dataclass
class FollowupTicket:
    """
    A WAITING_CUSTOMER ticket.

    `last_assistant_message_at` is read in the same query as the ticket, so
    eligibility is always decided on current data.
    """
    id: str
    number: int
    description: str
    updated_at: datetime
    creator_email: Optional[str] = None
    last_assistant_message_at: Optional[datetime] = None


@dataclass
class FollowupResult:
    """Counts produced by one sweep."""
    reminders: int = 0
    warnings: int = 0
    closed: int = 0
    errors: int = 0

    def record(self, stage: FollowupStage) -> None:
        if stage == FollowupStage.REMINDER:
            self.reminders += 1
        elif stage == FollowupStage.AUTO_CLOSE_WARNING:
            self.warnings += 1
        elif stage == FollowupStage.AUTO_CLOSED:
            self.closed += 1

    def to_dict(self) -> dict:
        return {
            "reminders": self.reminders,
            "warnings": self.warnings,
            "closed": self.closed,
            "errors": self.errors,
        }
