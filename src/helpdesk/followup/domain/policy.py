"""
Follow-up Policy
================

Pure stage calculation for the follow-up sweep.

Idle time is measured from the ticket's `updated_at`. Windows, with
R = reminder hours and D = auto-close days:

    idle >= D days                  -> AUTO_CLOSED
    (D-1) days <= idle < D days     -> AUTO_CLOSE_WARNING, unless the
                                       assistant wrote in the last 24h
    R hours <= idle < (D-1) days    -> REMINDER, unless the assistant
                                       wrote in the last R hours
    otherwise                       -> NONE

Nothing is stored between sweeps; the "assistant wrote recently" check is
what keeps repeated or overlapping sweeps from sending duplicates.
"""

from datetime import datetime, timedelta

from helpdesk.followup.domain.entities import FollowupStage, FollowupTicket
from helpdesk.triage.domain import AssistantConfig

WARNING_WINDOW = timedelta(hours=24)


class FollowupPolicy:

    @staticmethod
    def idle_time(ticket: FollowupTicket, now: datetime) -> timedelta:
        return now - ticket.updated_at

    @staticmethod
    def _assistant_wrote_since(ticket: FollowupTicket, since: datetime) -> bool:
        last = ticket.last_assistant_message_at
        return last is not None and last > since

    @classmethod
    def stage_for(
        cls,
        ticket: FollowupTicket,
        now: datetime,
        config: AssistantConfig
    ) -> FollowupStage:
        idle = cls.idle_time(ticket, now)
        close_after = timedelta(days=config.auto_close_after_days)
        warn_after = timedelta(days=config.auto_close_after_days - 1)
        remind_after = timedelta(hours=config.followup_reminder_hours)

        if idle >= close_after:
            return FollowupStage.AUTO_CLOSED

        if idle >= warn_after:
            if cls._assistant_wrote_since(ticket, now - WARNING_WINDOW):
                return FollowupStage.NONE
            return FollowupStage.AUTO_CLOSE_WARNING

        if idle >= remind_after:
            if cls._assistant_wrote_since(ticket, now - remind_after):
                return FollowupStage.NONE
            return FollowupStage.REMINDER

        return FollowupStage.NONE
