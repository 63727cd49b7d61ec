"""
Follow-up Controllers (API Routes)
===================================

Manual trigger for the follow-up sweep, for operators and for
deployments where the in-process scheduler is disabled (serverless).
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.followup.infrastructure import build_followup_service
from helpdesk.infrastructure.database import get_session
from helpdesk.shared.infrastructure.logging import get_logger
from helpdesk.triage.application import IAssistantConfigProvider, IAssistantMetrics, INotificationClient
from helpdesk.triage.interfaces.controllers import get_config_provider, get_metrics, get_notifier

logger = get_logger(__name__)
router = APIRouter(prefix="/followup", tags=["Follow-up"])


class FollowupRunResponse(BaseModel):
    reminders: int
    warnings: int
    closed: int
    errors: int


@router.post(
    "/run",
    response_model=FollowupRunResponse,
    summary="Run the follow-up sweep now",
    description="""
    Remind, warn or auto-close WAITING_CUSTOMER tickets based on idle time.

    Safe to call repeatedly: a ticket the assistant already wrote to inside
    the current window is skipped.
    """
)
async def run_followup(
    db: AsyncSession = Depends(get_session),
    config_provider: IAssistantConfigProvider = Depends(get_config_provider),
    notifier: INotificationClient = Depends(get_notifier),
    metrics: Optional[IAssistantMetrics] = Depends(get_metrics)
):
    logger.info("Follow-up sweep triggered manually")
    service = build_followup_service(db, config_provider, notifier, metrics)
    result = await service.process_auto_followup()
    return FollowupRunResponse(**result.to_dict())
