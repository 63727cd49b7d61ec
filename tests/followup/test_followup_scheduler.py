"""Tests for the follow-up sweep scheduler."""

from helpdesk.followup.infrastructure import FollowupScheduler


async def sweep():
    return None


async def test_start_registers_single_instance_job():
    scheduler = FollowupScheduler(interval_seconds=120)

    await scheduler.start(sweep)
    try:
        assert scheduler.is_running is True
        job = scheduler._scheduler.get_job(FollowupScheduler.JOB_ID)
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.trigger.interval.total_seconds() == 120
    finally:
        await scheduler.stop()

    assert scheduler.is_running is False


async def test_second_start_is_ignored():
    scheduler = FollowupScheduler(interval_seconds=60)

    await scheduler.start(sweep)
    first = scheduler._scheduler
    await scheduler.start(sweep)

    assert scheduler._scheduler is first
    await scheduler.stop()


async def test_stop_without_start():
    scheduler = FollowupScheduler()
    await scheduler.stop()
    assert scheduler.is_running is False
