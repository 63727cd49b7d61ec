"""
Triage Domain Entities
======================

Pure Python domain entities and result objects for the assistant.

Entities (Ticket, Agent, Department, KBArticle) are read from and written
back through repositories. Result objects are never persisted; every engine
operation returns one instead of raising.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from helpdesk.config import (
    ACTIVE_STATUSES,
    Language,
    Priority,
    Sentiment,
    TicketCategory,
    TicketStatus,
    UserRole,
)


@dataclass
class Ticket:
    """A customer support request, as far as the assistant needs to see it."""

    id: str
    number: int
    title: str
    description: str
    status: TicketStatus = TicketStatus.OPEN
    priority: Priority = Priority.MEDIUM
    sentiment: Sentiment = Sentiment.NEUTRAL
    category: TicketCategory = TicketCategory.OTHER
    assigned_to_id: Optional[str] = None

    # Creator (customer) contact
    creator_id: Optional[str] = None
    creator_name: str = ""
    creator_email: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


@dataclass
class Department:
    id: str
    name: str


@dataclass
class Agent:
    """
    A user that can own tickets.

    `workload` is derived at query time (assigned OPEN/IN_PROGRESS tickets)
    and never stored.
    """

    id: str
    name: str
    email: str
    role: UserRole
    department_id: Optional[str] = None
    department_name: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    workload: int = 0

    @property
    def display_name(self) -> str:
        return self.name or self.email


@dataclass
class KBArticle:
    """Knowledge-base article. Read-only for the assistant."""

    id: str
    title: str
    slug: str
    content: str
    published: bool = True


# ========== Result objects ==========

@dataclass
class ContentAnalysis:
    """Output of the content analyzer."""

    priority: Optional[Priority]
    sentiment: Sentiment
    category: TicketCategory
    confidence: int
    language: Language = Language.ES
    priority_escalated: bool = False

    @property
    def needs_escalation(self) -> bool:
        return self.priority == Priority.CRITICAL or self.sentiment == Sentiment.NEGATIVE

    @classmethod
    def empty(cls) -> "ContentAnalysis":
        """The analysis of a text in which nothing matched."""
        return cls(
            priority=None,
            sentiment=Sentiment.NEUTRAL,
            category=TicketCategory.OTHER,
            confidence=0,
            language=Language.ES,
        )

    def to_dict(self) -> dict:
        return {
            "priority": self.priority.value if self.priority else None,
            "sentiment": self.sentiment.value,
            "category": self.category.value,
            "confidence": self.confidence,
            "language": self.language.value,
            "priority_escalated": self.priority_escalated,
        }


@dataclass
class AgentCandidate:
    """A department agent scored for one ticket."""

    agent: Agent
    skill_score: int

    @property
    def workload(self) -> int:
        return self.agent.workload


@dataclass
class AssignmentResult:
    success: bool
    reason: str
    assigned_to_id: Optional[str] = None
    assigned_to_name: Optional[str] = None
    assigned_to_email: Optional[str] = None
    # Translated department label shown to the customer
    department_label: Optional[str] = None
    # True when the ticket already belonged to the selected agent
    unchanged: bool = False

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reason": self.reason,
            "assigned_to_id": self.assigned_to_id,
            "assigned_to_name": self.assigned_to_name,
            "department": self.department_label,
            "unchanged": self.unchanged,
        }


@dataclass
class KBArticleMatch:
    id: str
    title: str
    slug: str
    excerpt: str
    relevance_score: int
    matching_terms: int = 0
    portal_base_url: str = ""

    @property
    def url(self) -> str:
        return f"{self.portal_base_url.rstrip('/')}/portal/kb/{self.slug}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "slug": self.slug,
            "url": self.url,
            "excerpt": self.excerpt,
            "relevance_score": self.relevance_score,
        }


@dataclass
class KBResponseResult:
    has_relevant_article: bool
    auto_responded: bool = False
    article: Optional[KBArticleMatch] = None
    response_message: Optional[str] = None
    matches: List[KBArticleMatch] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "has_relevant_article": self.has_relevant_article,
            "auto_responded": self.auto_responded,
            "article": self.article.to_dict() if self.article else None,
            "suggestions": [m.to_dict() for m in self.matches],
        }


@dataclass
class TicketProcessingResult:
    """Outcome of running the whole assistant pipeline on a new ticket."""

    success: bool
    analysis: ContentAnalysis
    language: Language
    welcome_message_sent: bool = False
    escalated: bool = False
    assignment: Optional[AssignmentResult] = None
    kb_response: Optional[KBResponseResult] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def not_processed(cls, error: str) -> "TicketProcessingResult":
        return cls(
            success=False,
            analysis=ContentAnalysis.empty(),
            language=Language.ES,
            error=error,
        )

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "analysis": self.analysis.to_dict(),
            "language": self.language.value,
            "welcome_message_sent": self.welcome_message_sent,
            "escalated": self.escalated,
            "assignment": self.assignment.to_dict() if self.assignment else None,
            "kb_response": self.kb_response.to_dict() if self.kb_response else None,
            "error": self.error,
        }
