"""
Triage Application Layer
=========================

Application layer for the assistant.

Contains:
- Services: AgentMatcher, KnowledgeBaseResponder, AssistantService
- DTOs: Data transfer objects for API serialization
- Repository and collaborator interfaces
"""

from helpdesk.triage.application.dto import (
    AnalyzeRequest,
    ProcessTicketRequest,
    AssignRequest,
    KBSearchRequest,
    AnalysisResponse,
    AssignmentResponse,
    ArticleMatchInfo,
    KBSearchResponse,
    ProcessTicketAccepted,
    AssistantConfigResponse,
)
from helpdesk.triage.application.services import (
    AgentMatcher,
    KnowledgeBaseResponder,
    AssistantService,
    StaticConfigProvider,
    ITicketRepository,
    IAgentRepository,
    IArticleRepository,
    IMessageRepository,
    IAuditLogWriter,
    INotificationClient,
    IAssistantConfigProvider,
    IAssistantMetrics,
    IUnitOfWork,
    NoopUnitOfWork,
)

__all__ = [
    # DTOs
    "AnalyzeRequest",
    "ProcessTicketRequest",
    "AssignRequest",
    "KBSearchRequest",
    "AnalysisResponse",
    "AssignmentResponse",
    "ArticleMatchInfo",
    "KBSearchResponse",
    "ProcessTicketAccepted",
    "AssistantConfigResponse",
    # Services
    "AgentMatcher",
    "KnowledgeBaseResponder",
    "AssistantService",
    "StaticConfigProvider",
    # Repository Interfaces
    "ITicketRepository",
    "IAgentRepository",
    "IArticleRepository",
    "IMessageRepository",
    "IAuditLogWriter",
    "INotificationClient",
    "IAssistantConfigProvider",
    "IAssistantMetrics",
    "IUnitOfWork",
    "NoopUnitOfWork",
]
