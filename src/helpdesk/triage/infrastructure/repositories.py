"""
Triage Infrastructure Repositories
===================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Every statement, reads included, runs in its
own savepoint, so a failed query (a timeout, a bad row) leaves the outer
transaction usable. Committing goes through SQLAlchemyUnitOfWork.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from helpdesk.config import ACTIVE_STATUSES, Priority, Sentiment, TicketCategory, TicketStatus, UserRole
from helpdesk.core import RepositoryException
from helpdesk.triage.application.services import (
    IAgentRepository,
    IArticleRepository,
    IAuditLogWriter,
    IMessageRepository,
    ITicketRepository,
    IUnitOfWork,
)
from helpdesk.triage.domain import Agent, Department, KBArticle, Ticket
from helpdesk.triage.infrastructure.models import (
    AuditLogModel,
    DepartmentModel,
    KBArticleModel,
    MessageModel,
    TicketModel,
    UserModel,
)


def to_uuid(value: Any) -> Optional[UUID]:
    """Parse an identifier; None when it is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def require_uuid(value: Any, kind: str) -> UUID:
    parsed = to_uuid(value)
    if parsed is None:
        raise RepositoryException(f"Invalid {kind} ID: {value}")
    return parsed


async def execute_isolated(session: AsyncSession, stmt):
    """Run one statement inside a savepoint and return its buffered result."""
    async with session.begin_nested():
        return await session.execute(stmt)


def like_pattern(term: str) -> str:
    """Case-insensitive 'contains' pattern with LIKE wildcards escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def workload_subquery():
    """Correlated count of a user's assigned OPEN/IN_PROGRESS tickets."""
    return (
        select(func.count(TicketModel.id))
        .where(
            TicketModel.assigned_to_id == UserModel.id,
            TicketModel.status.in_([s.value for s in ACTIVE_STATUSES])
        )
        .correlate(UserModel)
        .scalar_subquery()
    )


def agent_from_model(model: UserModel, workload: int = 0) -> Agent:
    return Agent(
        id=str(model.id),
        name=model.name,
        email=model.email,
        role=UserRole(model.role),
        department_id=str(model.department_id) if model.department_id else None,
        department_name=model.department.name if model.department else None,
        skills=[skill.name for skill in model.skills],
        workload=workload or 0,
    )


class SQLAlchemyTicketRepository(ITicketRepository):
    """
    SQLAlchemy implementation of ticket repository.

    Mutations are single-row, last-write-wins updates.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID, with the creator's contact details."""
        ticket_uuid = to_uuid(ticket_id)
        if ticket_uuid is None:
            return None

        stmt = (
            select(TicketModel)
            .options(selectinload(TicketModel.creator))
            .where(TicketModel.id == ticket_uuid)
        )
        result = await execute_isolated(self._session, stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None

        return Ticket(
            id=str(model.id),
            number=model.number,
            title=model.title,
            description=model.description,
            status=TicketStatus(model.status),
            priority=Priority(model.priority),
            sentiment=Sentiment(model.sentiment),
            category=TicketCategory(model.category),
            assigned_to_id=str(model.assigned_to_id) if model.assigned_to_id else None,
            creator_id=str(model.creator_id) if model.creator_id else None,
            creator_name=model.creator.name if model.creator else "",
            creator_email=model.creator.email if model.creator else None,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    async def _update(self, ticket_id: str, **values: Any) -> None:
        ticket_uuid = require_uuid(ticket_id, "ticket")
        values["updated_at"] = datetime.now(timezone.utc)
        stmt = update(TicketModel).where(TicketModel.id == ticket_uuid).values(**values)
        # Each write runs in its own savepoint
        async with self._session.begin_nested():
            result = await self._session.execute(stmt)
            if result.rowcount == 0:
                raise RepositoryException(f"Ticket {ticket_id} not found")

    async def update_classification(
        self,
        ticket_id: str,
        priority: Optional[Priority],
        sentiment: Sentiment,
        category: TicketCategory
    ) -> None:
        values = {"sentiment": sentiment.value, "category": category.value}
        # No detected priority keeps whatever the ticket already has
        if priority is not None:
            values["priority"] = priority.value
        await self._update(ticket_id, **values)

    async def update_status(self, ticket_id: str, status: TicketStatus) -> None:
        await self._update(ticket_id, status=status.value)

    async def assign(self, ticket_id: str, agent_id: str) -> None:
        await self._update(ticket_id, assigned_to_id=require_uuid(agent_id, "agent"))


class SQLAlchemyAgentRepository(IAgentRepository):
    """
    SQLAlchemy implementation of agent lookups.

    Workload is computed in the same query, never cached.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    def _base_query(self):
        return (
            select(UserModel, workload_subquery().label("workload"))
            .options(selectinload(UserModel.skills), selectinload(UserModel.department))
        )

    async def _one(self, stmt) -> Optional[Agent]:
        result = await execute_isolated(self._session, stmt)
        row = result.first()
        if row is None:
            return None
        return agent_from_model(row[0], row[1])

    async def get_by_email(self, email: str) -> Optional[Agent]:
        return await self._one(self._base_query().where(UserModel.email == email))

    async def find_department(self, name: str) -> Optional[Department]:
        stmt = (
            select(DepartmentModel)
            .where(DepartmentModel.name.ilike(like_pattern(name), escape="\\"))
            .order_by(DepartmentModel.name)
            .limit(1)
        )
        result = await execute_isolated(self._session, stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return Department(id=str(model.id), name=model.name)

    async def list_department_agents(
        self,
        department_id: str,
        roles: List[Any],
        exclude_email: str
    ) -> List[Agent]:
        department_uuid = to_uuid(department_id)
        if department_uuid is None:
            return []

        stmt = self._base_query().where(
            UserModel.department_id == department_uuid,
            UserModel.role.in_([UserRole(r).value for r in roles]),
            UserModel.email != exclude_email,
            UserModel.is_active.is_(True),
        )
        result = await execute_isolated(self._session, stmt)
        return [agent_from_model(model, workload) for model, workload in result.all()]

    async def least_loaded_service_officer(self, exclude_email: str) -> Optional[Agent]:
        workload = workload_subquery()
        stmt = (
            select(UserModel, workload.label("workload"))
            .options(selectinload(UserModel.skills), selectinload(UserModel.department))
            .where(
                UserModel.role == UserRole.SERVICE_OFFICER.value,
                UserModel.email != exclude_email,
                UserModel.is_active.is_(True),
            )
            .order_by(workload.asc(), UserModel.created_at.asc())
            .limit(1)
        )
        return await self._one(stmt)


class SQLAlchemyArticleRepository(IArticleRepository):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def search_published(self, terms: List[str]) -> List[KBArticle]:
        if not terms:
            return []

        conditions = []
        for term in terms:
            pattern = like_pattern(term)
            conditions.append(KBArticleModel.title.ilike(pattern, escape="\\"))
            conditions.append(KBArticleModel.content.ilike(pattern, escape="\\"))

        stmt = select(KBArticleModel).where(
            KBArticleModel.published.is_(True),
            or_(*conditions)
        )
        result = await execute_isolated(self._session, stmt)
        return [
            KBArticle(
                id=str(model.id),
                title=model.title,
                slug=model.slug,
                content=model.content,
                published=model.published,
            )
            for model in result.scalars().all()
        ]


class SQLAlchemyMessageRepository(IMessageRepository):
    """Appends conversation messages. The ticket row is left untouched."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(
        self,
        ticket_id: str,
        sender_id: str,
        content: str,
        internal: bool = False
    ) -> None:
        model = MessageModel(
            id=uuid4(),
            ticket_id=require_uuid(ticket_id, "ticket"),
            sender_id=require_uuid(sender_id, "sender"),
            content=content,
            is_internal=internal,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session.begin_nested():
            self._session.add(model)


class SQLAlchemyAuditLogWriter(IAuditLogWriter):

    def __init__(self, session: AsyncSession):
        self._session = session

    async def log(
        self,
        action: str,
        entity: str,
        entity_id: str,
        details: Dict[str, Any]
    ) -> None:
        async with self._session.begin_nested():
            self._session.add(AuditLogModel(
                id=uuid4(),
                action=action,
                entity_type=entity,
                entity_id=str(entity_id),
                details=details,
                created_at=datetime.now(timezone.utc),
            ))


class SQLAlchemyUnitOfWork(IUnitOfWork):
    """Commits or rolls back the session the repositories share."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
