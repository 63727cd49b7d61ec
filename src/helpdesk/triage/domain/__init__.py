"""
Triage Domain Layer
===================

Contains:
- Entities and result objects (Ticket, Agent, ContentAnalysis, AssignmentResult, ...)
- Lexicon tables (keyword lists)
- Value objects and domain services (AssistantConfig, SkillMatcher, RelevanceScorer)
- ContentAnalyzer and MessageComposer

No infrastructure dependencies - pure Python business logic.
"""

from helpdesk.triage.domain.entities import (
    Agent,
    AgentCandidate,
    AssignmentResult,
    ContentAnalysis,
    Department,
    KBArticle,
    KBArticleMatch,
    KBResponseResult,
    Ticket,
    TicketProcessingResult,
)
from helpdesk.triage.domain.value_objects import (
    AssistantConfig,
    RelevanceScorer,
    SkillMatcher,
    round_half_up,
)
from helpdesk.triage.domain.analyzer import ContentAnalyzer
from helpdesk.triage.domain.messages import MessageComposer

__all__ = [
    # Entities
    "Agent",
    "Department",
    "KBArticle",
    "Ticket",
    # Result objects
    "AgentCandidate",
    "AssignmentResult",
    "ContentAnalysis",
    "KBArticleMatch",
    "KBResponseResult",
    "TicketProcessingResult",
    # Value Objects & Services
    "AssistantConfig",
    "ContentAnalyzer",
    "MessageComposer",
    "RelevanceScorer",
    "SkillMatcher",
    "round_half_up",
]
