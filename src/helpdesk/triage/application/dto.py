"""
Triage Application DTOs
========================

Data Transfer Objects for the assistant API layer.

Pydantic models for request/response validation.
"""

from typing import List, Optional, Literal

from pydantic import BaseModel, Field, field_validator

from helpdesk.triage.domain import (
    AssignmentResult,
    AssistantConfig,
    ContentAnalysis,
    KBArticleMatch,
)


# ========== Type Aliases for Literals ==========
LanguageStr = Literal["es", "en"]


# ========== Request DTOs ==========

class AnalyzeRequest(BaseModel):
    """Request model for content analysis."""
    title: str = Field(..., min_length=1, description="Ticket title")
    description: str = Field(default="", description="Ticket description")

    @field_validator("description")
    @classmethod
    def validate_description_length(cls, v: str) -> str:
        if len(v) > 20000:
            raise ValueError("Description too long (max 20000 characters)")
        return v


class ProcessTicketRequest(BaseModel):
    """Request model for running the assistant on a newly created ticket."""
    ticket_number: int = Field(..., ge=1, description="Human-facing ticket number")
    creator_name: str = Field(default="", description="Display name of the customer")
    title: str = Field(..., min_length=1)
    description: str = Field(default="")


class AssignRequest(BaseModel):
    """Request model for auto-assignment."""
    category: str = Field(..., description="Ticket category; unknown values map to OTHER")
    language: LanguageStr = Field(default="es")
    title: str = Field(default="")
    description: str = Field(default="")


class KBSearchRequest(BaseModel):
    """Request model for knowledge-base search."""
    title: str = Field(..., min_length=1)
    description: str = Field(default="")
    limit: int = Field(default=3, ge=1, le=10)


# ========== Response DTOs ==========

class AnalysisResponse(BaseModel):
    """Response model for content analysis."""
    priority: Optional[str]
    sentiment: str
    category: str
    confidence: int
    language: LanguageStr
    priority_escalated: bool

    @classmethod
    def from_domain(cls, analysis: ContentAnalysis) -> "AnalysisResponse":
        return cls(**analysis.to_dict())


class AssignmentResponse(BaseModel):
    """Response model for auto-assignment."""
    success: bool
    reason: str
    assigned_to_id: Optional[str] = None
    assigned_to_name: Optional[str] = None
    department: Optional[str] = None
    unchanged: bool = False

    @classmethod
    def from_domain(cls, result: AssignmentResult) -> "AssignmentResponse":
        return cls(**result.to_dict())


class ArticleMatchInfo(BaseModel):
    """Knowledge-base match in API responses."""
    id: str
    title: str
    slug: str
    url: str
    excerpt: str
    relevance_score: int = Field(..., ge=0, le=100)

    @classmethod
    def from_domain(cls, match: KBArticleMatch) -> "ArticleMatchInfo":
        return cls(**match.to_dict())


class KBSearchResponse(BaseModel):
    """Response model for knowledge-base search."""
    terms: List[str]
    matches: List[ArticleMatchInfo]


class ProcessTicketAccepted(BaseModel):
    """Response model for a queued ticket."""
    ticket_id: str
    status: Literal["queued"] = "queued"


class AssistantConfigResponse(BaseModel):
    """Public view of the assistant configuration."""
    enabled: bool
    name: str
    auto_assign_enabled: bool
    auto_kb_response_enabled: bool
    kb_relevance_threshold: int
    business_hours_start: int
    business_hours_end: int
    timezone: str
    followup_reminder_hours: int
    auto_close_after_days: int
    response_delay_ms: int
    response_delay_variation_ms: int

    @classmethod
    def from_domain(cls, config: AssistantConfig) -> "AssistantConfigResponse":
        return cls(**config.model_dump(include=set(cls.model_fields)))
