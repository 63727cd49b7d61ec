"""
Configuration Module
====================

Process settings (pydantic-settings, read from the environment and `.env`).

Also holds the closed enumerations shared by every bounded context
(ticket status, priority, sentiment, category, agent role, language).
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENVIRONMENTS = frozenset({"development", "testing", "staging", "production"})


class Settings(BaseSettings):
    """Deployment settings. Runtime assistant behaviour lives in the YAML file instead."""

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-assistant", description="Service name reported in logs and metrics")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Echo SQL statements")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    port: int = Field(default=8000, description="Bind port for uvicorn", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Connections kept open by the pool", ge=1)
    db_max_overflow: int = Field(default=10, description="Extra connections allowed under load", ge=0)

    # ========== Assistant ==========
    assistant_config_path: Path = Field(
        default=Path("assistant_config.yaml"),
        description="Path to the assistant runtime configuration YAML file"
    )
    followup_sweep_interval: int = Field(
        default=3600,
        description="Seconds between follow-up sweeps (0 disables the scheduler)",
        ge=0
    )

    # ========== Email ==========
    email_api_url: Optional[str] = Field(
        default=None,
        description="HTTP email API endpoint (JSON POST)"
    )
    email_api_key: Optional[str] = Field(
        default=None,
        description="Bearer token for the email API"
    )
    email_sender: str = Field(
        default="Helpdesk <no-reply@helpdesk.local>",
        description="From address for outgoing emails"
    )
    email_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for email API calls",
        ge=0.1,
        le=60
    )
    portal_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used in links sent to customers and agents"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Origins allowed to call the API from a browser"
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(
        default=None,
        description="Grafana OTLP gateway URL (e.g., https://otlp-gateway-prod-eu-west-0.grafana.net)"
    )
    grafana_api_key: Optional[str] = Field(
        default=None,
        description="Grafana API key for OTLP authentication"
    )
    grafana_instance_id: Optional[str] = Field(
        default=None,
        description="Grafana instance ID for OTLP authentication"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def known_environment(cls, value: str) -> str:
        if value not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {sorted(ENVIRONMENTS)}")
        return value


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


# ========== Constants ==========

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    WAITING_CUSTOMER = "WAITING_CUSTOMER"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class Priority(str, Enum):
    """Ticket priority levels."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Sentiment(str, Enum):
    """Customer sentiment. POSITIVE is reserved and never produced by the analyzer."""
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"


class TicketCategory(str, Enum):
    """Routing categories: one per department plus the OTHER fallback."""
    SERVICE_COMPLAINT = "SERVICE_COMPLAINT"
    SUPPORT = "SUPPORT"
    CONSULTING = "CONSULTING"
    DEVELOPMENT = "DEVELOPMENT"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    NETWORK = "NETWORK"
    ACCOUNTING = "ACCOUNTING"
    OTHER = "OTHER"


class UserRole(str, Enum):
    """User roles. Only the first four take part in assignment."""
    TEAM_LEAD = "TEAM_LEAD"
    TECHNICAL_LEAD = "TECHNICAL_LEAD"
    TECHNICIAN = "TECHNICIAN"
    SERVICE_OFFICER = "SERVICE_OFFICER"
    CLIENT = "CLIENT"
    VIRTUAL_ASSISTANT = "VIRTUAL_ASSISTANT"


class Language(str, Enum):
    """Languages the assistant answers in."""
    ES = "es"
    EN = "en"


# ========== Lists for validation ==========

ACTIVE_STATUSES = [TicketStatus.OPEN, TicketStatus.IN_PROGRESS]

# Department roles in order of preference (lower index wins)
ROLE_HIERARCHY = [UserRole.TEAM_LEAD, UserRole.TECHNICAL_LEAD, UserRole.TECHNICIAN]

VALID_PRIORITIES = [Priority.LOW, Priority.MEDIUM, Priority.HIGH, Priority.CRITICAL]
VALID_CATEGORIES = list(TicketCategory)


def to_category(value: Any) -> TicketCategory:
    """
    Map an arbitrary value onto the closed category enum.

    Unknown strings, None and foreign types all map to OTHER.
    """
    if isinstance(value, TicketCategory):
        return value
    if isinstance(value, str):
        try:
            return TicketCategory(value.strip().upper())
        except ValueError:
            return TicketCategory.OTHER
    return TicketCategory.OTHER
