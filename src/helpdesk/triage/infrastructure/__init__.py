"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the assistant:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Config watcher, email and metrics adapters, background processor
"""

from helpdesk.triage.infrastructure.models import (
    AuditLogModel,
    DepartmentModel,
    KBArticleModel,
    MessageModel,
    SkillModel,
    TicketModel,
    UserModel,
)
from helpdesk.triage.infrastructure.repositories import (
    SQLAlchemyAgentRepository,
    SQLAlchemyArticleRepository,
    SQLAlchemyAuditLogWriter,
    SQLAlchemyMessageRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
)
from helpdesk.triage.infrastructure.external import (
    AssistantConfigManager,
    BackgroundTicketProcessor,
    EmailNotificationClient,
    GrafanaAssistantMetrics,
    build_assistant_service,
)

__all__ = [
    "AuditLogModel",
    "DepartmentModel",
    "KBArticleModel",
    "MessageModel",
    "SkillModel",
    "TicketModel",
    "UserModel",
    "SQLAlchemyAgentRepository",
    "SQLAlchemyArticleRepository",
    "SQLAlchemyAuditLogWriter",
    "SQLAlchemyMessageRepository",
    "SQLAlchemyTicketRepository",
    "SQLAlchemyUnitOfWork",
    "AssistantConfigManager",
    "BackgroundTicketProcessor",
    "EmailNotificationClient",
    "GrafanaAssistantMetrics",
    "build_assistant_service",
]
