"""
Triage External Service Integrations
=====================================

External services for the assistant:
- YAML config file watcher (hot reload of AssistantConfig)
- Email notification adapter
- Grafana metrics adapter
- Background ticket processor (fire-and-forget pipeline runs)
"""

import asyncio
import random
import threading
from pathlib import Path
from typing import Any, AsyncContextManager, Callable, Dict, Optional, Set

import yaml
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from helpdesk.config import Sentiment
from helpdesk.core import ConfigurationException
from helpdesk.infrastructure.database import get_session_context
from helpdesk.infrastructure.email import EmailClient, EmailMessage
from helpdesk.shared.infrastructure.grafana import GrafanaOTLPExporter, get_grafana_exporter
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application.services import (
    AgentMatcher,
    AssistantService,
    IAssistantConfigProvider,
    IAssistantMetrics,
    INotificationClient,
    KnowledgeBaseResponder,
)
from helpdesk.triage.domain import AssistantConfig, TicketProcessingResult
from helpdesk.triage.infrastructure.repositories import (
    SQLAlchemyAgentRepository,
    SQLAlchemyArticleRepository,
    SQLAlchemyAuditLogWriter,
    SQLAlchemyMessageRepository,
    SQLAlchemyTicketRepository,
    SQLAlchemyUnitOfWork,
)

logger = get_logger(__name__)


class ConfigFileHandler(FileSystemEventHandler):
    """Watchdog event handler for assistant config file changes."""

    def __init__(self, config_manager: "AssistantConfigManager", config_path: Path):
        self.config_manager = config_manager
        self.config_path = config_path
        super().__init__()

    def on_modified(self, event):
        if event.is_directory:
            return
        if Path(event.src_path).resolve() == self.config_path.resolve():
            logger.info("Assistant config file changed", extra={"path": event.src_path})
            self.config_manager.reload()


class AssistantConfigManager(IAssistantConfigProvider):
    """
    Thread-safe assistant configuration manager with hot-reload support.

    Uses watchdog to monitor file changes and reload configuration
    without restarting the service. A reload that fails validation keeps
    the previous configuration.
    """

    def __init__(self, config: Optional[AssistantConfig] = None):
        self._config: Optional[AssistantConfig] = config
        self._lock = threading.Lock()
        self._path: Optional[Path] = None
        self._observer = None

    def load(self, path: Path) -> AssistantConfig:
        """
        Initial configuration load.

        Raises:
            ConfigurationException: If the file exists but is invalid
        """
        self._path = Path(path)
        try:
            config = self._load_from_file(self._path)
        except (yaml.YAMLError, ValidationError, TypeError) as e:
            raise ConfigurationException(
                f"Invalid assistant configuration in {self._path}",
                {"error": str(e)}
            ) from e

        with self._lock:
            self._config = config
        logger.info(
            "Assistant configuration loaded",
            extra={"path": str(self._path), "enabled": config.enabled}
        )
        return config

    def _load_from_file(self, path: Path) -> AssistantConfig:
        if not path.exists():
            logger.warning("Assistant config file not found, using defaults", extra={"path": str(path)})
            return AssistantConfig()

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")

        # Accept both a flat mapping and one nested under "assistant:"
        if isinstance(data.get("assistant"), dict):
            data = data["assistant"]

        return AssistantConfig(**data)

    def reload(self) -> bool:
        """Reload configuration from file."""
        if self._path is None:
            return False

        try:
            new_config = self._load_from_file(self._path)
        except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
            logger.error(
                "Failed to reload assistant config, keeping previous",
                extra={"path": str(self._path), "error": str(e)}
            )
            return False

        with self._lock:
            self._config = new_config
        logger.info("Assistant configuration reloaded successfully")
        return True

    def start_watching(self) -> None:
        """
        Start watching configuration file for changes.

        Skips watching if the file doesn't exist or the platform has no
        file notification support.
        """
        if self._path is None:
            raise RuntimeError("Config not loaded. Call load() first.")

        if not self._path.exists():
            logger.info("Config file doesn't exist, skipping file watch", extra={"path": str(self._path)})
            return

        try:
            self._observer = Observer()
            handler = ConfigFileHandler(self, self._path)
            self._observer.schedule(handler, str(self._path.parent), recursive=False)
            self._observer.start()
            logger.info("Started watching config file", extra={"path": str(self._path)})
        except OSError as e:
            logger.warning("File watching not available, using static config", extra={"error": str(e)})
            self._observer = None

    def stop_watching(self) -> None:
        """Stop watching configuration file (safe to call even if not watching)."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def get_config(self) -> AssistantConfig:
        with self._lock:
            if self._config is None:
                self._config = AssistantConfig()
            return self._config


class EmailNotificationClient(INotificationClient):
    """Notification port backed by the HTTP email client."""

    def __init__(self, email_client: Optional[EmailClient] = None):
        self._client = email_client or EmailClient()

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        tags: Optional[Dict[str, str]] = None
    ) -> bool:
        return await self._client.send_email(EmailMessage(to=to, subject=subject, html=html, tags=tags or {}))

    async def close(self) -> None:
        await self._client.close()


class GrafanaAssistantMetrics(IAssistantMetrics):
    """Pushes assistant metrics to Grafana Cloud; a no-op when not configured."""

    def __init__(self, exporter: Optional[GrafanaOTLPExporter] = None):
        self._exporter = exporter

    @property
    def exporter(self) -> GrafanaOTLPExporter:
        return self._exporter or get_grafana_exporter()

    async def track_sentiment(self, sentiment: Sentiment) -> None:
        await self.exporter.export_gauges(
            {"assistant_sentiment_detections": 1},
            description="Sentiment detections by the assistant",
            attributes={"sentiment": sentiment.value}
        )

    async def track_escalation(self, reason: str) -> None:
        await self.exporter.export_gauges(
            {"assistant_auto_escalations": 1},
            description="Tickets escalated automatically",
            attributes={"reason": reason}
        )

    async def track_response_time(self, duration_ms: int, ticket_id: str) -> None:
        await self.exporter.export_gauges(
            {"assistant_response_time_ms": duration_ms},
            unit="ms",
            description="End-to-end assistant processing time",
            attributes={"ticket_id": ticket_id}
        )

    async def track_followup(self, counts: Dict[str, int]) -> None:
        await self.exporter.export_gauges(
            {f"assistant_followup_{name}": value for name, value in counts.items()},
            description="Follow-up sweep outcome"
        )


def build_assistant_service(
    session: AsyncSession,
    config_provider: IAssistantConfigProvider,
    notifier: INotificationClient,
    metrics: Optional[IAssistantMetrics] = None,
    rng: Optional[random.Random] = None
) -> AssistantService:
    """Wire the assistant pipeline onto one database session."""
    ticket_repo = SQLAlchemyTicketRepository(session)
    agent_repo = SQLAlchemyAgentRepository(session)
    matcher = AgentMatcher(ticket_repo, agent_repo, SQLAlchemyAuditLogWriter(session), config_provider)
    kb_responder = KnowledgeBaseResponder(SQLAlchemyArticleRepository(session), ticket_repo, config_provider)
    return AssistantService(
        ticket_repository=ticket_repo,
        agent_repository=agent_repo,
        message_repository=SQLAlchemyMessageRepository(session),
        notification_client=notifier,
        config_provider=config_provider,
        agent_matcher=matcher,
        kb_responder=kb_responder,
        unit_of_work=SQLAlchemyUnitOfWork(session),
        metrics=metrics,
        rng=rng,
    )


class BackgroundTicketProcessor:
    """
    Runs the assistant pipeline off the request path.

    Each run gets its own session. Tasks are referenced until they finish
    and awaited on shutdown.
    """

    def __init__(
        self,
        service_factory: Callable[[AsyncSession], AssistantService],
        session_factory: Callable[[], AsyncContextManager[AsyncSession]] = get_session_context
    ):
        self._service_factory = service_factory
        self._session_factory = session_factory
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, **ticket: Any) -> asyncio.Task:
        """
        Schedule `process_ticket_creation` for a ticket and return immediately.

        Keyword arguments are passed through: ticket_id, ticket_number,
        creator_name, title, description.
        """
        task = asyncio.create_task(self._run(ticket), name=f"assistant-{ticket.get('ticket_id')}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, ticket: Dict[str, Any]) -> Optional[TicketProcessingResult]:
        try:
            async with self._session_factory() as session:
                service = self._service_factory(session)
                return await service.process_ticket_creation(**ticket)
        except Exception as e:
            logger.error(
                "Background ticket processing failed",
                extra={"ticket_id": ticket.get("ticket_id"), "error": str(e)},
                exc_info=True
            )
            return None

    async def drain(self, timeout: float = 30.0) -> None:
        """Wait for in-flight runs; cancel whatever is left after `timeout`."""
        if not self._tasks:
            return

        logger.info("Draining background ticket processing", extra={"pending": len(self._tasks)})
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning("Cancelled unfinished ticket processing", extra={"cancelled": len(pending)})
