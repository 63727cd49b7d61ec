"""
Triage Controllers (API Routes)
================================

FastAPI routes for the assistant.

Controllers delegate to application services. Long-running work (the full
pipeline on ticket creation) is handed to the background processor so
the caller is never blocked by it.
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.config import Language
from helpdesk.core import ResourceNotFoundException
from helpdesk.infrastructure.database import get_session
from helpdesk.shared.infrastructure.logging import get_logger, log_latency
from helpdesk.triage.application import (
    AgentMatcher,
    AnalysisResponse,
    AnalyzeRequest,
    ArticleMatchInfo,
    AssignmentResponse,
    AssignRequest,
    AssistantConfigResponse,
    IAssistantConfigProvider,
    IAssistantMetrics,
    INotificationClient,
    KBSearchRequest,
    KBSearchResponse,
    KnowledgeBaseResponder,
    ProcessTicketAccepted,
    ProcessTicketRequest,
)
from helpdesk.triage.domain import ContentAnalysis, ContentAnalyzer, RelevanceScorer
from helpdesk.triage.infrastructure import (
    BackgroundTicketProcessor,
    SQLAlchemyAgentRepository,
    SQLAlchemyArticleRepository,
    SQLAlchemyAuditLogWriter,
    SQLAlchemyTicketRepository,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/assistant", tags=["Assistant"])


# ========== Example payloads for Swagger ==========

ANALYZE_RESPONSE_EXAMPLE = {
    "priority": "CRITICAL",
    "sentiment": "NEUTRAL",
    "category": "CONSULTING",
    "confidence": 33,
    "language": "es",
    "priority_escalated": False
}


# ========== Dependencies ==========

def get_config_provider(request: Request) -> IAssistantConfigProvider:
    provider = getattr(request.app.state, "config_manager", None)
    if provider is None:
        raise HTTPException(status_code=503, detail="Assistant configuration not loaded")
    return provider


def get_notifier(request: Request) -> INotificationClient:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        raise HTTPException(status_code=503, detail="Notification client not initialized")
    return notifier


def get_metrics(request: Request) -> Optional[IAssistantMetrics]:
    return getattr(request.app.state, "metrics", None)


def get_processor(request: Request) -> BackgroundTicketProcessor:
    processor = getattr(request.app.state, "ticket_processor", None)
    if processor is None:
        raise HTTPException(status_code=503, detail="Background processor not running")
    return processor


# ========== Route Handlers ==========

@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    summary="Analyze ticket text",
    description="""
    Detect language, sentiment, priority and category of a ticket.

    Pure keyword rules: the same text always gives the same result. A
    negative sentiment lifts a missing, LOW or MEDIUM priority to HIGH.
    """,
    responses={200: {"content": {"application/json": {"example": ANALYZE_RESPONSE_EXAMPLE}}}}
)
async def analyze_ticket(
    request: Request,
    payload: AnalyzeRequest,
    config_provider: IAssistantConfigProvider = Depends(get_config_provider)
):
    config = config_provider.get_config()
    if not config.enabled:
        analysis = ContentAnalysis.empty()
    else:
        analysis = ContentAnalyzer.analyze(payload.title, payload.description)

    logger.info(
        "Ticket text analyzed",
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            **analysis.to_dict()
        }
    )
    return AnalysisResponse.from_domain(analysis)


@router.post(
    "/tickets/{ticket_id}/process",
    response_model=ProcessTicketAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Run the assistant on a new ticket",
    description="""
    Queue the full assistant pipeline for a freshly created ticket:
    classification, escalation alert, auto-assignment, knowledge base,
    reply and notifications. Returns immediately.
    """
)
async def process_ticket(
    ticket_id: str,
    payload: ProcessTicketRequest,
    processor: BackgroundTicketProcessor = Depends(get_processor)
):
    processor.submit(
        ticket_id=ticket_id,
        ticket_number=payload.ticket_number,
        creator_name=payload.creator_name,
        title=payload.title,
        description=payload.description,
    )
    logger.info("Ticket queued for assistant", extra={"ticket_id": ticket_id, "pending": processor.pending})
    return ProcessTicketAccepted(ticket_id=ticket_id)


@router.post(
    "/tickets/{ticket_id}/assign",
    response_model=AssignmentResponse,
    summary="Auto-assign a ticket",
    description="""
    Route a ticket to the best available agent of the category's department,
    falling back to the least-loaded service officer. `success=false` with a
    reason means nobody was eligible; the ticket stays unassigned.
    """,
    responses={404: {"description": "Ticket not found"}}
)
async def assign_ticket(
    ticket_id: str,
    payload: AssignRequest,
    db: AsyncSession = Depends(get_session),
    config_provider: IAssistantConfigProvider = Depends(get_config_provider)
):
    start_time = time.perf_counter()
    ticket_repo = SQLAlchemyTicketRepository(db)

    if await ticket_repo.get_by_id(ticket_id) is None:
        raise ResourceNotFoundException("Ticket", ticket_id)

    matcher = AgentMatcher(
        ticket_repo,
        SQLAlchemyAgentRepository(db),
        SQLAlchemyAuditLogWriter(db),
        config_provider
    )
    result = await matcher.auto_assign(
        ticket_id,
        payload.category,
        Language(payload.language),
        payload.title,
        payload.description,
    )

    logger.info(
        "Auto-assignment requested",
        extra={
            "ticket_id": ticket_id,
            "success": result.success,
            "processing_time_ms": int((time.perf_counter() - start_time) * 1000)
        }
    )
    return AssignmentResponse.from_domain(result)


@router.post(
    "/kb/search",
    response_model=KBSearchResponse,
    summary="Find knowledge-base articles for a ticket",
    description="""
    Score published articles against the ticket text. Articles need a score
    of at least 30 and two matching terms; tickets with fewer than two
    significant terms get no results.
    """
)
async def search_knowledge_base(
    payload: KBSearchRequest,
    db: AsyncSession = Depends(get_session),
    config_provider: IAssistantConfigProvider = Depends(get_config_provider)
):
    responder = KnowledgeBaseResponder(
        SQLAlchemyArticleRepository(db),
        SQLAlchemyTicketRepository(db),
        config_provider
    )
    with log_latency(logger, "kb_search", limit=payload.limit):
        matches = await responder.find_relevant_articles(payload.title, payload.description, payload.limit)
    return KBSearchResponse(
        terms=RelevanceScorer.extract_terms(payload.title, payload.description),
        matches=[ArticleMatchInfo.from_domain(m) for m in matches],
    )


@router.get(
    "/config",
    response_model=AssistantConfigResponse,
    summary="Current assistant configuration"
)
async def get_assistant_config(
    config_provider: IAssistantConfigProvider = Depends(get_config_provider)
):
    return AssistantConfigResponse.from_domain(config_provider.get_config())
