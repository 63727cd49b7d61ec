"""Tests for follow-up stage selection."""

from datetime import timedelta

import pytest

from helpdesk.followup.domain import FollowupPolicy, FollowupResult, FollowupStage, FollowupTicket
from helpdesk.triage.domain import AssistantConfig

from conftest import NOW


def waiting(idle: timedelta, assistant_wrote_ago=None) -> FollowupTicket:
    return FollowupTicket(
        id="t",
        number=1,
        description="",
        updated_at=NOW - idle,
        last_assistant_message_at=NOW - assistant_wrote_ago if assistant_wrote_ago is not None else None,
    )


def stage(ticket, config=None):
    return FollowupPolicy.stage_for(ticket, NOW, config or AssistantConfig())


@pytest.mark.parametrize("idle, expected", [
    (timedelta(hours=47, minutes=59), FollowupStage.NONE),
    (timedelta(hours=48), FollowupStage.REMINDER),
    (timedelta(days=5, hours=23), FollowupStage.REMINDER),
    (timedelta(days=6), FollowupStage.AUTO_CLOSE_WARNING),
    (timedelta(days=7) - timedelta(minutes=1), FollowupStage.AUTO_CLOSE_WARNING),
    (timedelta(days=7), FollowupStage.AUTO_CLOSED),
    (timedelta(days=30), FollowupStage.AUTO_CLOSED),
])
def test_windows(idle, expected):
    assert stage(waiting(idle)) == expected


def test_reminder_suppressed_after_recent_assistant_message():
    ticket = waiting(timedelta(hours=60), assistant_wrote_ago=timedelta(hours=47))
    assert stage(ticket) == FollowupStage.NONE


def test_reminder_repeats_once_window_has_passed():
    ticket = waiting(timedelta(days=4), assistant_wrote_ago=timedelta(hours=49))
    assert stage(ticket) == FollowupStage.REMINDER


def test_warning_suppressed_after_message_in_last_day():
    ticket = waiting(timedelta(days=6, hours=2), assistant_wrote_ago=timedelta(hours=2))
    assert stage(ticket) == FollowupStage.NONE


def test_warning_sent_when_last_message_is_older_than_a_day():
    ticket = waiting(timedelta(days=6, hours=2), assistant_wrote_ago=timedelta(hours=25))
    assert stage(ticket) == FollowupStage.AUTO_CLOSE_WARNING


def test_close_ignores_recent_messages():
    ticket = waiting(timedelta(days=7), assistant_wrote_ago=timedelta(minutes=5))
    assert stage(ticket) == FollowupStage.AUTO_CLOSED


def test_custom_windows():
    config = AssistantConfig(followup_reminder_hours=12, auto_close_after_days=3)

    assert stage(waiting(timedelta(hours=12)), config) == FollowupStage.REMINDER
    assert stage(waiting(timedelta(days=2)), config) == FollowupStage.AUTO_CLOSE_WARNING
    assert stage(waiting(timedelta(days=3)), config) == FollowupStage.AUTO_CLOSED


def test_result_counts():
    result = FollowupResult()
    for s in (FollowupStage.REMINDER, FollowupStage.REMINDER, FollowupStage.AUTO_CLOSED, FollowupStage.NONE):
        result.record(s)

    assert result.to_dict() == {"reminders": 2, "warnings": 0, "closed": 1, "errors": 0}
