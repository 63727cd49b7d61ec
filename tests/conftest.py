"""
Shared Test Fixtures
====================

In-memory implementations of the repository and collaborator ports, plus a
small seeded world (departments, agents, the assistant account, a ticket).
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("PORTAL_BASE_URL", "https://help.example.com")

import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from helpdesk.config import Priority, TicketStatus, UserRole
from helpdesk.core import RepositoryException
from helpdesk.followup.application import IFollowupTicketRepository
from helpdesk.followup.domain import FollowupTicket
from helpdesk.triage.application import (
    AgentMatcher,
    AssistantService,
    IAgentRepository,
    IArticleRepository,
    IAssistantMetrics,
    IAuditLogWriter,
    IMessageRepository,
    INotificationClient,
    ITicketRepository,
    IUnitOfWork,
    KnowledgeBaseResponder,
    StaticConfigProvider,
)
from helpdesk.triage.domain import Agent, AssistantConfig, Department, KBArticle, Ticket

# Monday 2026-03-02 15:00 UTC
NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)
ASSISTANT_EMAIL = "sofia@helpdesk.example.com"
ESCALATION_EMAIL = "supervisors@helpdesk.example.com"


class Journal(list):
    """Ordered record of writes, commits and emails across fakes."""

    def events(self, *kinds: str) -> List[tuple]:
        return [e for e in self if e[0] in kinds]


class FakeUnitOfWork(IUnitOfWork):

    def __init__(self, journal: Optional[Journal] = None):
        self.journal = journal if journal is not None else Journal()
        self.fail_commit = False

    async def commit(self):
        if self.fail_commit:
            raise RepositoryException("commit failed")
        self.journal.append(("commit",))

    async def rollback(self):
        self.journal.append(("rollback",))


class FakeTicketRepository(ITicketRepository):

    def __init__(self, tickets=()):
        self.tickets: Dict[str, Ticket] = {t.id: t for t in tickets}
        self.classifications: List[tuple] = []
        self.fail_on: set = set()
        self.journal: Optional[Journal] = None

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RepositoryException(f"{operation} failed")

    async def get_by_id(self, ticket_id):
        self._check("get_by_id")
        return self.tickets.get(ticket_id)

    async def update_classification(self, ticket_id, priority, sentiment, category):
        self._check("update_classification")
        self.classifications.append((ticket_id, priority, sentiment, category))
        ticket = self.tickets[ticket_id]
        if priority is not None:
            ticket.priority = priority
        ticket.sentiment = sentiment
        ticket.category = category

    async def update_status(self, ticket_id, status):
        self._check("update_status")
        self.tickets[ticket_id].status = status

    async def assign(self, ticket_id, agent_id):
        self._check("assign")
        self.tickets[ticket_id].assigned_to_id = agent_id
        if self.journal is not None:
            self.journal.append(("assign", ticket_id, agent_id))


class FakeAgentRepository(IAgentRepository):

    def __init__(self, agents=(), departments=()):
        self.agents: List[Agent] = list(agents)
        self.departments: List[Department] = list(departments)
        self.fail = False

    async def get_by_email(self, email):
        if self.fail:
            raise RepositoryException("database unavailable")
        return next((a for a in self.agents if a.email == email), None)

    async def find_department(self, name):
        if self.fail:
            raise RepositoryException("database unavailable")
        return next((d for d in self.departments if name.lower() in d.name.lower()), None)

    async def list_department_agents(self, department_id, roles, exclude_email):
        return [
            a for a in self.agents
            if a.department_id == department_id and a.role in roles and a.email != exclude_email
        ]

    async def least_loaded_service_officer(self, exclude_email):
        officers = [
            a for a in self.agents
            if a.role == UserRole.SERVICE_OFFICER and a.email != exclude_email
        ]
        return min(officers, key=lambda a: a.workload, default=None)


class FakeArticleRepository(IArticleRepository):

    def __init__(self, articles=()):
        self.articles: List[KBArticle] = list(articles)
        self.searches: List[List[str]] = []
        self.fail = False
        self.journal: Optional[Journal] = None

    async def search_published(self, terms):
        self.searches.append(list(terms))
        if self.journal is not None:
            self.journal.append(("kb_search",))
        if self.fail:
            raise RepositoryException("search failed")
        return [
            a for a in self.articles
            if a.published and any(t in a.title.lower() or t in a.content.lower() for t in terms)
        ]


class FakeMessageRepository(IMessageRepository):

    def __init__(self, clock=lambda: NOW):
        self.messages: List[Dict[str, Any]] = []
        self.fail_for: set = set()
        self._clock = clock
        self.journal: Optional[Journal] = None

    async def create(self, ticket_id, sender_id, content, internal=False):
        if ticket_id in self.fail_for:
            raise RepositoryException("insert failed")
        if self.journal is not None:
            self.journal.append(("message", ticket_id))
        self.messages.append({
            "ticket_id": ticket_id,
            "sender_id": sender_id,
            "content": content,
            "internal": internal,
            "created_at": self._clock(),
        })


class FakeAuditLogWriter(IAuditLogWriter):

    def __init__(self):
        self.entries: List[tuple] = []

    async def log(self, action, entity, entity_id, details):
        self.entries.append((action, entity, entity_id, details))


class FakeNotifier(INotificationClient):

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail = False
        self.journal: Optional[Journal] = None

    async def send(self, to, subject, html, tags=None):
        if self.fail:
            raise ConnectionError("smtp down")
        if self.journal is not None:
            self.journal.append(("email", to))
        self.sent.append({"to": to, "subject": subject, "html": html, "tags": tags})
        return True

    def subjects(self) -> List[str]:
        return [m["subject"] for m in self.sent]


class FakeMetrics(IAssistantMetrics):

    def __init__(self):
        self.calls: List[tuple] = []

    async def track_sentiment(self, sentiment):
        self.calls.append(("sentiment", sentiment))

    async def track_escalation(self, reason):
        self.calls.append(("escalation", reason))

    async def track_response_time(self, duration_ms, ticket_id):
        self.calls.append(("response_time", ticket_id))

    async def track_followup(self, counts):
        self.calls.append(("followup", counts))

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]


class FakeFollowupTicketRepository(IFollowupTicketRepository):
    """
    WAITING_CUSTOMER view over a FakeTicketRepository.

    The last assistant message time is derived from the message fake so a
    second sweep sees what the first one wrote.
    """

    def __init__(self, tickets: FakeTicketRepository, messages: FakeMessageRepository):
        self._tickets = tickets
        self._messages = messages
        self.fail = False

    async def list_waiting(self, assistant_id):
        if self.fail:
            raise RepositoryException("query failed")
        waiting = []
        for ticket in self._tickets.tickets.values():
            if ticket.status != TicketStatus.WAITING_CUSTOMER:
                continue
            waiting.append(FollowupTicket(
                id=ticket.id,
                number=ticket.number,
                description=ticket.description,
                updated_at=ticket.updated_at,
                creator_email=ticket.creator_email,
                last_assistant_message_at=self._last_assistant_message_at(ticket.id, assistant_id),
            ))
        return waiting

    def _last_assistant_message_at(self, ticket_id, assistant_id):
        sent = [
            m["created_at"] for m in self._messages.messages
            if m["ticket_id"] == ticket_id and m["sender_id"] == assistant_id
        ]
        return max(sent) if sent else None

    async def claim(self, ticket, assistant_id):
        current = self._tickets.tickets.get(ticket.id)
        return (
            current is not None
            and current.status == TicketStatus.WAITING_CUSTOMER
            and current.updated_at == ticket.updated_at
            and self._last_assistant_message_at(ticket.id, assistant_id) == ticket.last_assistant_message_at
        )

    async def close(self, ticket):
        current = self._tickets.tickets[ticket.id]
        if current.status != TicketStatus.WAITING_CUSTOMER or current.updated_at != ticket.updated_at:
            return False
        current.status = TicketStatus.CLOSED
        return True


def make_agent(
    agent_id: str,
    role: UserRole,
    department_id: Optional[str] = None,
    skills=(),
    workload: int = 0,
    email: Optional[str] = None
) -> Agent:
    return Agent(
        id=agent_id,
        name=agent_id.replace("-", " ").title(),
        email=email or f"{agent_id}@helpdesk.example.com",
        role=role,
        department_id=department_id,
        skills=list(skills),
        workload=workload,
    )


# ========== Fixtures ==========

@pytest.fixture
def config() -> AssistantConfig:
    return AssistantConfig(
        name="Sofia",
        assistant_email=ASSISTANT_EMAIL,
        escalation_email=ESCALATION_EMAIL,
        response_delay_ms=0,
        response_delay_variation_ms=0,
        portal_base_url="https://help.example.com",
    )


@pytest.fixture
def config_provider(config) -> StaticConfigProvider:
    return StaticConfigProvider(config)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def departments() -> List[Department]:
    return [
        Department(id="dep-support", name="Support"),
        Department(id="dep-consulting", name="Consulting"),
        Department(id="dep-development", name="Development"),
        Department(id="dep-service", name="Service"),
    ]


@pytest.fixture
def assistant_account() -> Agent:
    return make_agent("assistant", UserRole.VIRTUAL_ASSISTANT, email=ASSISTANT_EMAIL)


@pytest.fixture
def agents(assistant_account) -> List[Agent]:
    return [
        assistant_account,
        make_agent("support-lead", UserRole.TEAM_LEAD, "dep-support", ["netsuite"], workload=4),
        make_agent("support-tech", UserRole.TECHNICIAN, "dep-support", ["suitescript", "workflow"], workload=1),
        make_agent("officer-busy", UserRole.SERVICE_OFFICER, "dep-service", workload=6),
        make_agent("officer-free", UserRole.SERVICE_OFFICER, "dep-service", workload=2),
    ]


@pytest.fixture
def ticket() -> Ticket:
    return Ticket(
        id="ticket-1",
        number=101,
        title="",
        description="",
        priority=Priority.MEDIUM,
        creator_name="María (Cliente)",
        creator_email="maria@customer.example.com",
        updated_at=NOW - timedelta(minutes=1),
    )


@pytest.fixture
def journal() -> Journal:
    return Journal()


@pytest.fixture
def unit_of_work(journal) -> FakeUnitOfWork:
    return FakeUnitOfWork(journal)


@pytest.fixture
def ticket_repo(ticket, journal) -> FakeTicketRepository:
    repo = FakeTicketRepository([ticket])
    repo.journal = journal
    return repo


@pytest.fixture
def agent_repo(agents, departments) -> FakeAgentRepository:
    return FakeAgentRepository(agents, departments)


@pytest.fixture
def article_repo(journal) -> FakeArticleRepository:
    repo = FakeArticleRepository()
    repo.journal = journal
    return repo


@pytest.fixture
def message_repo(journal) -> FakeMessageRepository:
    repo = FakeMessageRepository()
    repo.journal = journal
    return repo


@pytest.fixture
def audit_writer() -> FakeAuditLogWriter:
    return FakeAuditLogWriter()


@pytest.fixture
def notifier(journal) -> FakeNotifier:
    fake = FakeNotifier()
    fake.journal = journal
    return fake


@pytest.fixture
def metrics() -> FakeMetrics:
    return FakeMetrics()


@pytest.fixture
def agent_matcher(ticket_repo, agent_repo, audit_writer, config_provider) -> AgentMatcher:
    return AgentMatcher(ticket_repo, agent_repo, audit_writer, config_provider)


@pytest.fixture
def kb_responder(article_repo, ticket_repo, config_provider) -> KnowledgeBaseResponder:
    return KnowledgeBaseResponder(article_repo, ticket_repo, config_provider)


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def assistant_service(
    ticket_repo,
    agent_repo,
    message_repo,
    notifier,
    config_provider,
    agent_matcher,
    kb_responder,
    unit_of_work,
    metrics,
    rng,
    sleeps
) -> AssistantService:
    async def record_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return AssistantService(
        ticket_repo,
        agent_repo,
        message_repo,
        notifier,
        config_provider,
        agent_matcher,
        kb_responder,
        unit_of_work=unit_of_work,
        metrics=metrics,
        rng=rng,
        sleep=record_sleep,
        clock=lambda: NOW,
    )
