"""
Follow-up External Integrations
================================

- APScheduler wrapper running the sweep on an interval
- Wiring of FollowupService onto a database session
"""

from typing import Awaitable, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.followup.application import FollowupService
from helpdesk.followup.infrastructure.repositories import SQLAlchemyFollowupTicketRepository
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application.services import (
    IAssistantConfigProvider,
    IAssistantMetrics,
    INotificationClient,
)
from helpdesk.triage.infrastructure.repositories import (
    SQLAlchemyAgentRepository,
    SQLAlchemyAuditLogWriter,
    SQLAlchemyMessageRepository,
    SQLAlchemyUnitOfWork,
)

logger = get_logger(__name__)


def build_followup_service(
    session: AsyncSession,
    config_provider: IAssistantConfigProvider,
    notifier: INotificationClient,
    metrics: Optional[IAssistantMetrics] = None
) -> FollowupService:
    return FollowupService(
        ticket_repository=SQLAlchemyFollowupTicketRepository(session),
        agent_repository=SQLAlchemyAgentRepository(session),
        message_repository=SQLAlchemyMessageRepository(session),
        audit_writer=SQLAlchemyAuditLogWriter(session),
        notification_client=notifier,
        config_provider=config_provider,
        metrics=metrics,
        unit_of_work=SQLAlchemyUnitOfWork(session),
    )


class FollowupScheduler:
    """
    Wrapper for APScheduler for the background follow-up sweep.

    One instance of the job at a time; a run that is still going when the
    next one is due makes the next one skip.
    """

    JOB_ID = "assistant_followup"

    def __init__(self, interval_seconds: int = 3600):
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    async def start(self, job_func: Callable[[], Awaitable[None]]) -> None:
        """Start the scheduler with the given job function."""
        if self._running:
            logger.warning("Follow-up scheduler already running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            job_func,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            name="Assistant Follow-up Sweep",
            misfire_grace_time=300,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self._scheduler.start()
        self._running = True

        logger.info("Follow-up scheduler started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        if self._scheduler:
            self._scheduler.shutdown(wait=True)

        self._running = False
        logger.info("Follow-up scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._running
