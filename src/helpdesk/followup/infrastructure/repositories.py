"""
Follow-up Infrastructure Repositories
======================================

SQLAlchemy access to WAITING_CUSTOMER tickets for the sweep.

A sweep acts on one ticket at a time: ``claim`` locks the row and checks
that nothing changed since ``list_waiting`` read it, the follow-up is
written, and the caller commits before emailing. An overlapping sweep
blocks on the lock and then sees the committed message or status.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import TicketStatus
from helpdesk.followup.application import IFollowupTicketRepository
from helpdesk.followup.domain import FollowupTicket
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.infrastructure.models import MessageModel, TicketModel, UserModel
from helpdesk.triage.infrastructure.repositories import execute_isolated, require_uuid, to_uuid

logger = get_logger(__name__)


class SQLAlchemyFollowupTicketRepository(IFollowupTicketRepository):
    """
    Reads waiting tickets together with the assistant's latest message.

    Both come from one query at sweep time, never from a cache.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def list_waiting(self, assistant_id: str) -> List[FollowupTicket]:
        assistant_uuid = to_uuid(assistant_id)
        if assistant_uuid is None:
            return []

        last_message = (
            select(func.max(MessageModel.created_at))
            .where(
                MessageModel.ticket_id == TicketModel.id,
                MessageModel.sender_id == assistant_uuid
            )
            .correlate(TicketModel)
            .scalar_subquery()
        )

        stmt = (
            select(TicketModel, UserModel.email, last_message.label("last_assistant_message_at"))
            .outerjoin(UserModel, UserModel.id == TicketModel.creator_id)
            .where(TicketModel.status == TicketStatus.WAITING_CUSTOMER.value)
            .order_by(TicketModel.updated_at.asc())
        )
        result = await execute_isolated(self._session, stmt)

        return [
            FollowupTicket(
                id=str(model.id),
                number=model.number,
                description=model.description,
                updated_at=_aware(model.updated_at),
                creator_email=email,
                last_assistant_message_at=_aware(last_at) if last_at else None,
            )
            for model, email, last_at in result.all()
        ]

    async def claim(self, ticket: FollowupTicket, assistant_id: str) -> bool:
        ticket_uuid = require_uuid(ticket.id, "ticket")
        locked = await execute_isolated(
            self._session,
            select(TicketModel.status, TicketModel.updated_at)
            .where(TicketModel.id == ticket_uuid)
            .with_for_update()
        )
        row = locked.first()
        if row is None:
            return False

        status, updated_at = row
        if status != TicketStatus.WAITING_CUSTOMER.value or _aware(updated_at) != ticket.updated_at:
            logger.info(
                "Ticket changed since listing",
                extra={"ticket_id": ticket.id, "status": status}
            )
            return False

        last = await execute_isolated(
            self._session,
            select(func.max(MessageModel.created_at)).where(
                MessageModel.ticket_id == ticket_uuid,
                MessageModel.sender_id == require_uuid(assistant_id, "assistant")
            )
        )
        last_at: Optional[datetime] = last.scalar_one_or_none()
        if (_aware(last_at) if last_at else None) != ticket.last_assistant_message_at:
            logger.info("Ticket already followed up by another sweep", extra={"ticket_id": ticket.id})
            return False
        return True

    async def close(self, ticket: FollowupTicket) -> bool:
        stmt = (
            update(TicketModel)
            .where(
                TicketModel.id == require_uuid(ticket.id, "ticket"),
                TicketModel.status == TicketStatus.WAITING_CUSTOMER.value,
                TicketModel.updated_at == ticket.updated_at,
            )
            .values(status=TicketStatus.CLOSED.value, updated_at=datetime.now(timezone.utc))
        )
        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
        return result.rowcount > 0


def _aware(value: datetime) -> datetime:
    """Treat naive timestamps from the driver as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
