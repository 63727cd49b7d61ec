"""
Follow-up Application Services
===============================

FollowupService runs the periodic sweep over WAITING_CUSTOMER tickets.

Each ticket is handled in isolation: it is claimed, its message (and for
auto-close its status change and audit record) is written and committed,
and only then is the customer emailed. A failure is logged, rolled back,
counted in `errors` and the sweep moves on. A ticket that changed since it
was listed is skipped without a count. Email failures never undo the
committed follow-up.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from helpdesk.followup.domain import FollowupPolicy, FollowupResult, FollowupStage, FollowupTicket
from helpdesk.infrastructure.email.templates import followup_email
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application.services import (
    IAgentRepository,
    IAssistantConfigProvider,
    IAssistantMetrics,
    IAuditLogWriter,
    IMessageRepository,
    INotificationClient,
    IUnitOfWork,
    NoopUnitOfWork,
    utc_now,
)
from helpdesk.triage.domain import AssistantConfig, ContentAnalyzer, MessageComposer
from helpdesk.triage.domain.messages import email_subject

logger = get_logger(__name__)


# ========== Repository Interfaces ==========

class IFollowupTicketRepository(ABC):
    """Interface for the sweep's ticket access."""

    @abstractmethod
    async def list_waiting(self, assistant_id: str) -> List[FollowupTicket]:
        """All WAITING_CUSTOMER tickets with the time of the assistant's latest message."""

    @abstractmethod
    async def claim(self, ticket: FollowupTicket, assistant_id: str) -> bool:
        """
        Lock the ticket for this sweep.

        False when its status, `updated_at` or the assistant's latest
        message differ from what `list_waiting` returned.
        """

    @abstractmethod
    async def close(self, ticket: FollowupTicket) -> bool:
        """
        Set status CLOSED if the ticket is still WAITING_CUSTOMER with the
        `updated_at` that was read. False when nothing was updated.
        """


# ========== Application Services ==========

class FollowupService:
    """
    Reminder -> warning -> auto-close sweep.

    Stateless between runs; safe to call at any cadence.
    """

    def __init__(
        self,
        ticket_repository: IFollowupTicketRepository,
        agent_repository: IAgentRepository,
        message_repository: IMessageRepository,
        audit_writer: IAuditLogWriter,
        notification_client: INotificationClient,
        config_provider: IAssistantConfigProvider,
        metrics: Optional[IAssistantMetrics] = None,
        unit_of_work: Optional[IUnitOfWork] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._agent_repo = agent_repository
        self._message_repo = message_repository
        self._audit = audit_writer
        self._notifier = notification_client
        self._config_provider = config_provider
        self._metrics = metrics
        self._uow = unit_of_work or NoopUnitOfWork()
        self._clock = clock

    async def process_auto_followup(
        self,
        config: Optional[AssistantConfig] = None,
        now: Optional[datetime] = None
    ) -> FollowupResult:
        """
        Run one sweep.

        Returns:
            FollowupResult with reminders, warnings, closed and errors counts
        """
        config = config or self._config_provider.get_config()
        result = FollowupResult()

        if not config.enabled:
            logger.info("Assistant disabled, skipping follow-up sweep")
            return result

        try:
            assistant = await self._agent_repo.get_by_email(config.assistant_email)
            if assistant is None:
                logger.error(
                    "Assistant user not found, skipping follow-up sweep",
                    extra={"assistant_email": config.assistant_email}
                )
                return result
            tickets = await self._ticket_repo.list_waiting(assistant.id)
        except Exception as e:
            result.errors += 1
            logger.error("Follow-up sweep could not load tickets", extra={"error": str(e)}, exc_info=True)
            return result

        now = now or self._clock()

        for ticket in tickets:
            try:
                stage = FollowupPolicy.stage_for(ticket, now, config)
                if stage == FollowupStage.NONE:
                    continue
                if await self._apply(ticket, stage, assistant.id, config):
                    result.record(stage)
            except Exception as e:
                result.errors += 1
                await self._rollback(ticket)
                logger.error(
                    "Follow-up failed for ticket",
                    extra={"ticket_id": ticket.id, "ticket_number": ticket.number, "error": str(e)},
                    exc_info=True
                )

        logger.info("Follow-up sweep finished", extra={"waiting": len(tickets), **result.to_dict()})
        await self._track(result)
        return result

    async def _apply(
        self,
        ticket: FollowupTicket,
        stage: FollowupStage,
        assistant_id: str,
        config: AssistantConfig
    ) -> bool:
        """Returns False when the ticket changed since it was listed."""
        if not await self._ticket_repo.claim(ticket, assistant_id):
            await self._uow.rollback()
            return False

        language = ContentAnalyzer.detect_language(ticket.description)
        message = MessageComposer.followup_message(
            stage.value,
            language,
            ticket_number=ticket.number,
            assistant_name=config.name,
            hours=config.followup_reminder_hours,
        )

        if stage == FollowupStage.AUTO_CLOSED:
            if not await self._ticket_repo.close(ticket):
                logger.info("Ticket no longer closable, skipping", extra={"ticket_id": ticket.id})
                await self._uow.rollback()
                return False
            await self._message_repo.create(ticket.id, assistant_id, message)
            await self._audit.log(
                "UPDATE",
                "TICKET",
                ticket.id,
                {"status": "CLOSED", "method": "auto-close", "reason": "inactivity"}
            )
        else:
            await self._message_repo.create(ticket.id, assistant_id, message)

        await self._uow.commit()
        logger.info(
            "Follow-up applied",
            extra={"ticket_id": ticket.id, "ticket_number": ticket.number, "stage": stage.value}
        )

        await self._notify(
            ticket,
            email_subject(stage.value, language, ticket_number=ticket.number),
            followup_email(message),
            stage,
        )
        return True

    async def _rollback(self, ticket: FollowupTicket) -> None:
        try:
            await self._uow.rollback()
        except Exception as e:
            logger.error("Rollback failed", extra={"ticket_id": ticket.id, "error": str(e)})

    async def _notify(self, ticket: FollowupTicket, subject: str, html: str, stage: FollowupStage) -> None:
        if not ticket.creator_email:
            return
        try:
            await self._notifier.send(ticket.creator_email, subject, html, {"kind": stage.value})
        except Exception as e:
            logger.error(
                "Follow-up email failed",
                extra={"ticket_id": ticket.id, "stage": stage.value, "error": str(e)}
            )

    async def _track(self, result: FollowupResult) -> None:
        if self._metrics is None:
            return
        try:
            await self._metrics.track_followup(result.to_dict())
        except Exception as e:
            logger.warning("Metrics tracking failed", extra={"metric": "track_followup", "error": str(e)})
