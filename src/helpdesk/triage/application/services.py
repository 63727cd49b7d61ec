"""
Triage Application Services
============================

Application services for the assistant:
- AgentMatcher: route a ticket to the best available agent
- KnowledgeBaseResponder: find relevant articles and answer from them
- AssistantService: orchestrate the whole pipeline on ticket creation

Classification update, escalation, assignment, knowledge base, reply and
notifications are independent failure domains: a failing step is logged
and the remaining steps still run. Nothing here raises to the caller.
"""

import asyncio
import random
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from helpdesk.config import (
    ROLE_HIERARCHY,
    Language,
    Priority,
    Sentiment,
    TicketCategory,
    TicketStatus,
    to_category,
)
from helpdesk.core import ResourceNotFoundException
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.domain import (
    Agent,
    AgentCandidate,
    AssignmentResult,
    AssistantConfig,
    ContentAnalysis,
    ContentAnalyzer,
    Department,
    KBArticle,
    KBArticleMatch,
    KBResponseResult,
    MessageComposer,
    RelevanceScorer,
    SkillMatcher,
    Ticket,
    TicketProcessingResult,
)
from helpdesk.triage.domain.lexicon import (
    CATEGORY_DEPARTMENT_MAP,
    KB_MIN_MATCHING_TERMS,
    SERVICE_DEPARTMENT,
)
from helpdesk.triage.domain.messages import (
    ASSIGNMENT_FAILURES,
    department_label,
    email_subject,
    escalation_reason,
)
from helpdesk.infrastructure.email.templates import (
    assigned_email,
    assistant_response_email,
    escalation_alert_email,
)

logger = get_logger(__name__)

DISABLED = "Assistant disabled"
ASSISTANT_MISSING = "Assistant user not found"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ITicketRepository(ABC):
    """Interface for ticket data access."""

    @abstractmethod
    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID."""

    @abstractmethod
    async def update_classification(
        self,
        ticket_id: str,
        priority: Optional[Priority],
        sentiment: Sentiment,
        category: TicketCategory
    ) -> None:
        """Store analyzer output. A None priority leaves the stored one untouched."""

    @abstractmethod
    async def update_status(self, ticket_id: str, status: TicketStatus) -> None:
        """Change ticket status."""

    @abstractmethod
    async def assign(self, ticket_id: str, agent_id: str) -> None:
        """Set the ticket's assignee."""


class IAgentRepository(ABC):
    """Interface for agent / department lookups."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Agent]:
        """Get user by email (used for the assistant account)."""

    @abstractmethod
    async def find_department(self, name: str) -> Optional[Department]:
        """First department whose name contains `name`, case-insensitive."""

    @abstractmethod
    async def list_department_agents(
        self,
        department_id: str,
        roles: List[Any],
        exclude_email: str
    ) -> List[Agent]:
        """Agents of a department with the given roles, skills and live workload loaded."""

    @abstractmethod
    async def least_loaded_service_officer(self, exclude_email: str) -> Optional[Agent]:
        """Service officer with the fewest OPEN/IN_PROGRESS tickets."""


class IArticleRepository(ABC):
    """Interface for knowledge-base article access."""

    @abstractmethod
    async def search_published(self, terms: List[str]) -> List[KBArticle]:
        """Published articles whose title or body contains any term."""


class IMessageRepository(ABC):
    """Interface for ticket conversation messages."""

    @abstractmethod
    async def create(
        self,
        ticket_id: str,
        sender_id: str,
        content: str,
        internal: bool = False
    ) -> None:
        """Append a message. Must not change the ticket's updated_at."""


class IAuditLogWriter(ABC):
    """Interface for the audit trail."""

    @abstractmethod
    async def log(
        self,
        action: str,
        entity: str,
        entity_id: str,
        details: Dict[str, Any]
    ) -> None:
        """Write one audit record."""


class INotificationClient(ABC):
    """Interface for outgoing email."""

    @abstractmethod
    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        tags: Optional[Dict[str, str]] = None
    ) -> bool:
        """Send an email. Returns False instead of raising on failure."""


class IAssistantConfigProvider(ABC):
    """Interface for assistant configuration access."""

    @abstractmethod
    def get_config(self) -> AssistantConfig:
        """Get current assistant configuration."""


class IAssistantMetrics(ABC):
    """Interface for assistant metrics."""

    @abstractmethod
    async def track_sentiment(self, sentiment: Sentiment) -> None:
        """Record one sentiment detection."""

    @abstractmethod
    async def track_escalation(self, reason: str) -> None:
        """Record one automatic escalation."""

    @abstractmethod
    async def track_response_time(self, duration_ms: int, ticket_id: str) -> None:
        """Record end-to-end processing time of one ticket."""

    @abstractmethod
    async def track_followup(self, counts: Dict[str, int]) -> None:
        """Record the outcome of one follow-up sweep."""


class IUnitOfWork(ABC):
    """
    Transaction boundary shared by the repositories of one run.

    Services commit after each independent step and before any email
    about that step goes out.
    """

    @abstractmethod
    async def commit(self) -> None:
        """Make everything written so far durable and visible."""

    @abstractmethod
    async def rollback(self) -> None:
        """Discard everything written since the last commit."""


class NoopUnitOfWork(IUnitOfWork):
    """For repositories that persist on every call."""

    async def commit(self) -> None:
        return None

    async def rollback(self) -> None:
        return None


class StaticConfigProvider(IAssistantConfigProvider):
    """Provider that always returns the same configuration."""

    def __init__(self, config: Optional[AssistantConfig] = None):
        self._config = config or AssistantConfig()

    def get_config(self) -> AssistantConfig:
        return self._config


# ========== Application Services ==========

class AgentMatcher:
    """
    Auto-assignment of tickets.

    Routing:
    1. SERVICE_COMPLAINT / OTHER -> least-loaded service officer
    2. Department category -> best TEAM_LEAD / TECHNICAL_LEAD / TECHNICIAN
    3. Empty or unknown department -> service officer fallback
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        agent_repository: IAgentRepository,
        audit_writer: IAuditLogWriter,
        config_provider: IAssistantConfigProvider
    ):
        self._ticket_repo = ticket_repository
        self._agent_repo = agent_repository
        self._audit = audit_writer
        self._config_provider = config_provider

    async def find_available_agent(
        self,
        department_name: str,
        title: str,
        description: str,
        exclude_email: str
    ) -> Optional[Agent]:
        """Best-ranked department agent for this ticket text, or None."""
        department = await self._agent_repo.find_department(department_name)
        if department is None:
            logger.warning("Department not found", extra={"department": department_name})
            return None

        agents = await self._agent_repo.list_department_agents(
            department.id, list(ROLE_HIERARCHY), exclude_email
        )
        if not agents:
            logger.warning("No agents found in department", extra={"department": department.name})
            return None

        keywords = SkillMatcher.extract_keywords(title, description)
        candidates = [
            AgentCandidate(agent=agent, skill_score=SkillMatcher.skill_score(keywords, agent.skills))
            for agent in agents
        ]
        ranked = SkillMatcher.rank(candidates)
        best = ranked[0]

        logger.info(
            "Agent selected",
            extra={
                "department": department.name,
                "agent_id": best.agent.id,
                "role": best.agent.role.value,
                "skill_score": best.skill_score,
                "workload": best.workload,
                "keywords": keywords[:5],
                "runners_up": [
                    {"agent_id": c.agent.id, "skill_score": c.skill_score, "workload": c.workload}
                    for c in ranked[1:3]
                ],
            }
        )

        if best.agent.department_name is None:
            best.agent.department_name = department.name
        return best.agent

    async def _assign(self, ticket_id: str, agent: Agent, category: TicketCategory) -> bool:
        """Persist the assignment. Returns False when it was already in place."""
        ticket = await self._ticket_repo.get_by_id(ticket_id)
        if ticket is None:
            raise ResourceNotFoundException("Ticket", ticket_id)

        if ticket.assigned_to_id == agent.id:
            logger.info(
                "Ticket already assigned to selected agent",
                extra={"ticket_id": ticket_id, "agent_id": agent.id}
            )
            return False

        await self._ticket_repo.assign(ticket_id, agent.id)
        await self._audit.log(
            "ASSIGN",
            "TICKET",
            ticket_id,
            {
                "assignedTo": agent.email,
                "method": "auto-assignment",
                "category": category.value,
            }
        )
        return True

    async def _success(
        self,
        ticket_id: str,
        agent: Agent,
        category: TicketCategory,
        department: str,
        language: Language
    ) -> AssignmentResult:
        changed = await self._assign(ticket_id, agent, category)
        label = department_label(department, language)
        return AssignmentResult(
            success=True,
            reason=MessageComposer.assigned_to_department(label, language),
            assigned_to_id=agent.id,
            assigned_to_name=agent.display_name,
            assigned_to_email=agent.email,
            department_label=label,
            unchanged=not changed,
        )

    async def _assign_service_officer(
        self,
        ticket_id: str,
        category: TicketCategory,
        language: Language,
        exclude_email: str,
        failure: str
    ) -> AssignmentResult:
        officer = await self._agent_repo.least_loaded_service_officer(exclude_email)
        if officer is None:
            logger.warning("No service officer available", extra={"ticket_id": ticket_id})
            return AssignmentResult(success=False, reason=ASSIGNMENT_FAILURES[failure][language])
        return await self._success(ticket_id, officer, category, SERVICE_DEPARTMENT, language)

    async def auto_assign(
        self,
        ticket_id: str,
        category: Any,
        language: Language,
        title: str = "",
        description: str = "",
        config: Optional[AssistantConfig] = None
    ) -> AssignmentResult:
        """
        Assign a ticket automatically.

        Returns:
            AssignmentResult; success=False with a reason in `language`
            when no eligible agent exists or something failed
        """
        config = config or self._config_provider.get_config()
        if not config.enabled:
            return AssignmentResult(success=False, reason=DISABLED)

        category = to_category(category)
        try:
            department_name = CATEGORY_DEPARTMENT_MAP.get(category)

            if department_name is None:
                logger.info(
                    "Category routes to service officer",
                    extra={"ticket_id": ticket_id, "category": category.value}
                )
                return await self._assign_service_officer(
                    ticket_id, category, language, config.assistant_email, "no_service_officer"
                )

            agent = await self.find_available_agent(
                department_name, title or "", description or "", config.assistant_email
            )
            if agent is not None:
                return await self._success(
                    ticket_id, agent, category, agent.department_name or department_name, language
                )

            logger.info(
                "No department agents, falling back to service officer",
                extra={"ticket_id": ticket_id, "department": department_name}
            )
            return await self._assign_service_officer(
                ticket_id, category, language, config.assistant_email, "no_agent"
            )

        except Exception as e:
            logger.error(
                "Auto-assignment failed",
                extra={"ticket_id": ticket_id, "error": str(e)},
                exc_info=True
            )
            return AssignmentResult(success=False, reason=ASSIGNMENT_FAILURES["error"][language])


class KnowledgeBaseResponder:
    """Finds relevant knowledge-base articles and answers from them."""

    def __init__(
        self,
        article_repository: IArticleRepository,
        ticket_repository: ITicketRepository,
        config_provider: IAssistantConfigProvider
    ):
        self._article_repo = article_repository
        self._ticket_repo = ticket_repository
        self._config_provider = config_provider

    async def find_relevant_articles(
        self,
        title: str,
        description: str,
        limit: int = 3,
        config: Optional[AssistantConfig] = None
    ) -> List[KBArticleMatch]:
        """
        Score published articles against the ticket text.

        Tickets with fewer than two significant terms never get suggestions.
        """
        config = config or self._config_provider.get_config()
        if not config.enabled:
            return []

        terms = RelevanceScorer.extract_terms(title or "", description or "")
        if len(terms) < KB_MIN_MATCHING_TERMS:
            logger.info("KB search skipped, not enough significant terms", extra={"terms": terms})
            return []

        try:
            articles = await self._article_repo.search_published(terms)
        except Exception as e:
            logger.error("KB article search failed", extra={"error": str(e), "terms": terms})
            return []

        matches = RelevanceScorer.rank(articles, terms, limit, config.portal_base_url)
        if not matches and articles:
            logger.info(
                "KB candidates filtered out for low relevance",
                extra={"candidates": len(articles), "terms": terms}
            )
        return matches

    async def generate_kb_response(
        self,
        ticket_id: str,
        title: str,
        description: str,
        language: Language,
        threshold: Optional[int] = None,
        config: Optional[AssistantConfig] = None
    ) -> KBResponseResult:
        """
        Decide between answering from the top article and suggesting articles.

        An answer moves the ticket to WAITING_CUSTOMER.
        """
        config = config or self._config_provider.get_config()
        if not config.enabled:
            return KBResponseResult(has_relevant_article=False)

        threshold = config.kb_relevance_threshold if threshold is None else threshold
        matches = await self.find_relevant_articles(title, description, 3, config)
        if not matches:
            return KBResponseResult(has_relevant_article=False)

        top = matches[0]
        if top.relevance_score < threshold:
            return KBResponseResult(has_relevant_article=True, article=top, matches=matches)

        response = MessageComposer.kb_auto_response(top, language)
        try:
            await self._ticket_repo.update_status(ticket_id, TicketStatus.WAITING_CUSTOMER)
        except Exception as e:
            logger.error(
                "Failed to move ticket to WAITING_CUSTOMER",
                extra={"ticket_id": ticket_id, "error": str(e)}
            )

        logger.info(
            "KB auto-response triggered",
            extra={"ticket_id": ticket_id, "article_id": top.id, "relevance_score": top.relevance_score}
        )
        return KBResponseResult(
            has_relevant_article=True,
            auto_responded=True,
            article=top,
            response_message=response,
            matches=matches,
        )


class AssistantService:
    """
    Orchestrates the assistant on ticket creation.

    analyze -> classification update -> escalation alert -> assignment ->
    knowledge base -> composed reply -> customer email.

    Classification, assignment, knowledge base and reply are committed one
    by one, so a failure in a later step leaves the earlier ones in place.
    """

    def __init__(
        self,
        ticket_repository: ITicketRepository,
        agent_repository: IAgentRepository,
        message_repository: IMessageRepository,
        notification_client: INotificationClient,
        config_provider: IAssistantConfigProvider,
        agent_matcher: AgentMatcher,
        kb_responder: KnowledgeBaseResponder,
        unit_of_work: Optional[IUnitOfWork] = None,
        metrics: Optional[IAssistantMetrics] = None,
        composer: Optional[MessageComposer] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now
    ):
        self._ticket_repo = ticket_repository
        self._agent_repo = agent_repository
        self._message_repo = message_repository
        self._notifier = notification_client
        self._config_provider = config_provider
        self._matcher = agent_matcher
        self._kb = kb_responder
        self._uow = unit_of_work or NoopUnitOfWork()
        self._metrics = metrics
        self._rng = rng or random.Random()
        self._composer = composer or MessageComposer(self._rng)
        self._sleep = sleep
        self._clock = clock

    def analyze(
        self,
        title: str,
        description: str,
        config: Optional[AssistantConfig] = None
    ) -> ContentAnalysis:
        config = config or self._config_provider.get_config()
        if not config.enabled:
            return ContentAnalysis.empty()
        return ContentAnalyzer.analyze(title, description)

    async def _track(self, method: str, *args: Any) -> None:
        if self._metrics is None:
            return
        try:
            await getattr(self._metrics, method)(*args)
        except Exception as e:
            logger.warning("Metrics tracking failed", extra={"metric": method, "error": str(e)})

    async def _notify(self, to: Optional[str], subject: str, html: str, **tags: str) -> bool:
        if not to:
            return False
        try:
            return await self._notifier.send(to, subject, html, tags or None)
        except Exception as e:
            logger.error("Notification failed", extra={"to": to, "subject": subject, "error": str(e)})
            return False

    async def _checkpoint(self, ticket_id: str, step: str) -> bool:
        try:
            await self._uow.commit()
            return True
        except Exception as e:
            logger.error("Commit failed", extra={"ticket_id": ticket_id, "step": step, "error": str(e)})

        try:
            await self._uow.rollback()
        except Exception as e:
            logger.error("Rollback failed", extra={"ticket_id": ticket_id, "step": step, "error": str(e)})
        return False

    async def _update_classification(self, ticket_id: str, analysis: ContentAnalysis) -> None:
        try:
            await self._ticket_repo.update_classification(
                ticket_id, analysis.priority, analysis.sentiment, analysis.category
            )
            logger.info(
                "Ticket classification updated",
                extra={"ticket_id": ticket_id, **analysis.to_dict()}
            )
        except Exception as e:
            logger.error(
                "Failed to update ticket classification",
                extra={"ticket_id": ticket_id, "error": str(e)}
            )

    async def _escalate(
        self,
        ticket_id: str,
        ticket_number: int,
        analysis: ContentAnalysis,
        config: AssistantConfig
    ) -> bool:
        reason = escalation_reason(analysis)
        await self._track("track_escalation", reason)
        language = analysis.language
        await self._notify(
            config.escalation_email,
            email_subject("escalation", language, ticket_number=ticket_number),
            escalation_alert_email(
                ticket_number,
                reason,
                analysis.sentiment.value,
                config.ticket_url(ticket_id, admin=True),
                language,
            ),
            kind="escalation",
        )
        logger.info(
            "Ticket escalated",
            extra={"ticket_id": ticket_id, "ticket_number": ticket_number, "reason": reason}
        )
        return True

    async def _assign(
        self,
        ticket_id: str,
        ticket_number: int,
        title: str,
        description: str,
        analysis: ContentAnalysis,
        config: AssistantConfig
    ) -> AssignmentResult:
        result = await self._matcher.auto_assign(
            ticket_id, analysis.category, analysis.language, title, description, config
        )
        if not await self._checkpoint(ticket_id, "assignment"):
            return AssignmentResult(success=False, reason=ASSIGNMENT_FAILURES["error"][analysis.language])

        if result.success and not result.unchanged and result.assigned_to_email:
            await self._notify(
                result.assigned_to_email,
                email_subject("assigned", analysis.language, ticket_number=ticket_number),
                assigned_email(ticket_number, title, config.ticket_url(ticket_id, admin=True), analysis.language),
                kind="assignment",
            )
        return result

    async def process_ticket_creation(
        self,
        ticket_id: str,
        ticket_number: int,
        creator_name: str,
        title: str,
        description: str,
        config: Optional[AssistantConfig] = None
    ) -> TicketProcessingResult:
        """
        Run the whole assistant pipeline on a freshly created ticket.

        Returns:
            TicketProcessingResult; success=False with `error` when the
            assistant is disabled, unprovisioned or could not post its reply
        """
        started = time.perf_counter()
        config = config or self._config_provider.get_config()

        if not config.enabled:
            logger.info("Assistant disabled, skipping ticket", extra={"ticket_id": ticket_id})
            return TicketProcessingResult.not_processed(DISABLED)

        try:
            assistant = await self._agent_repo.get_by_email(config.assistant_email)
        except Exception as e:
            logger.error("Assistant lookup failed", extra={"ticket_id": ticket_id, "error": str(e)})
            return TicketProcessingResult.not_processed(str(e))

        if assistant is None:
            logger.error(
                "Assistant user not found",
                extra={"ticket_id": ticket_id, "assistant_email": config.assistant_email}
            )
            return TicketProcessingResult.not_processed(ASSISTANT_MISSING)

        await self._sleep(config.response_delay_seconds(self._rng))

        analysis = ContentAnalyzer.analyze(title, description)
        language = analysis.language
        await self._track("track_sentiment", analysis.sentiment)
        await self._update_classification(ticket_id, analysis)
        await self._checkpoint(ticket_id, "classification")

        escalated = False
        if analysis.needs_escalation:
            escalated = await self._escalate(ticket_id, ticket_number, analysis, config)

        assignment = None
        assignment_message = ""
        if config.auto_assign_enabled:
            assignment = await self._assign(
                ticket_id, ticket_number, title, description, analysis, config
            )
            assignment_message = MessageComposer.assignment_message(
                assignment, analysis.category, language
            )

        kb_result = None
        kb_auto_response = ""
        if config.auto_kb_response_enabled:
            kb_result = await self._kb.generate_kb_response(
                ticket_id, title, description, language, config.kb_relevance_threshold, config
            )
            if kb_result.auto_responded and kb_result.response_message:
                kb_auto_response = kb_result.response_message
            suggestions = [] if kb_auto_response else kb_result.matches
        else:
            suggestions = await self._kb.find_relevant_articles(title, description, 3, config)
        await self._checkpoint(ticket_id, "knowledge_base")

        now = self._clock()
        message = self._composer.welcome_message(
            creator_name=creator_name,
            assistant_name=config.name,
            ticket_number=ticket_number,
            language=language,
            local_hour=config.local_time(now).hour,
            business_hours=config.is_business_hours(now),
            analysis=analysis,
            assignment_message=assignment_message,
            kb_auto_response=kb_auto_response,
            kb_suggestions=MessageComposer.suggestions_text(suggestions, language),
        )

        result = TicketProcessingResult(
            success=True,
            analysis=analysis,
            language=language,
            escalated=escalated,
            assignment=assignment,
            kb_response=kb_result,
            message=message,
        )

        try:
            await self._message_repo.create(ticket_id, assistant.id, message)
            result.welcome_message_sent = True
        except Exception as e:
            logger.error("Failed to post assistant reply", extra={"ticket_id": ticket_id, "error": str(e)})
            result.success = False
            result.error = str(e)
            return result

        if not await self._checkpoint(ticket_id, "reply"):
            result.welcome_message_sent = False
            result.success = False
            result.error = "reply could not be committed"
            return result

        await self._notify_customer(ticket_id, ticket_number, message, language, config)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        await self._track("track_response_time", elapsed_ms, ticket_id)
        logger.info(
            "Ticket processed",
            extra={
                "ticket_id": ticket_id,
                "ticket_number": ticket_number,
                "language": language.value,
                "escalated": escalated,
                "assigned": bool(assignment and assignment.success),
                "kb_auto_responded": bool(kb_auto_response),
                "processing_ms": elapsed_ms,
            }
        )
        return result

    async def _notify_customer(
        self,
        ticket_id: str,
        ticket_number: int,
        message: str,
        language: Language,
        config: AssistantConfig
    ) -> None:
        try:
            ticket = await self._ticket_repo.get_by_id(ticket_id)
        except Exception as e:
            logger.error("Ticket lookup for customer email failed", extra={"ticket_id": ticket_id, "error": str(e)})
            return

        if ticket is None or not ticket.creator_email:
            return

        await self._notify(
            ticket.creator_email,
            email_subject("assistant_response", language, assistant=config.name, ticket_number=ticket_number),
            assistant_response_email(ticket_number, config.name, message, config.ticket_url(ticket_id), language),
            kind="assistant_response",
        )
