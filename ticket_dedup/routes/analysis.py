"""
Ticket Analysis API Routes

Provides endpoints for:
- Ad-hoc similarity analysis of a candidate ticket
- Jira webhook intake (analysis runs in the background)
- Manual historical data sync (shares one in-progress flag with the scheduler)
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, status
from pydantic import ValidationError

from ticket_dedup.dependencies import get_analysis_service
from ticket_dedup.models.schemas import AnalysisRequest, AnalysisResponse, JiraWebhookEvent, SyncResult
from ticket_dedup.services.analysis import TicketAnalysisService
from ticket_dedup.utils.auth import require_webhook_signature
from ticket_dedup.utils.logger import get_logger

router = APIRouter(prefix="/api/v1/analysis", tags=["analysis"])
logger = get_logger(__name__)

# Global sync state
sync_state = {
    "historical_sync_in_progress": False,
    "last_result": None,
}


def _validation_message(error: ValidationError) -> str:
    """First validation error as a plain message"""
    first = error.errors()[0]
    message = first.get("msg", str(error))
    return message.removeprefix("Value error, ")


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_ticket(
    payload: Dict[str, Any] = Body(...),
    service: TicketAnalysisService = Depends(get_analysis_service)
) -> AnalysisResponse:
    """
    Find historical tickets similar to the submitted ticket

    Raises:
        HTTPException 400: If the request is invalid (e.g. empty title)
        HTTPException 500: If the analysis failed
    """
    try:
        request = AnalysisRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_validation_message(e)
        )

    result = await service.analyze_ticket(request)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error during ticket analysis"
        )
    return result


@router.post(
    "/webhook/jira",
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_webhook_signature)]
)
async def receive_jira_webhook(
    event: JiraWebhookEvent,
    background_tasks: BackgroundTasks,
    service: TicketAnalysisService = Depends(get_analysis_service)
):
    """
    Accept a Jira webhook and process it in the background

    The response does not wait for the analysis; its outcome is logged.
    """
    logger.info(f"Received Jira webhook: {event.webhook_event} {event.ticket_key}")
    background_tasks.add_task(service.process_webhook, event)
    return {
        "message": "Webhook accepted for processing",
        "webhook_event": event.webhook_event,
        "ticket_key": event.ticket_key,
    }


async def run_historical_sync(service: TicketAnalysisService) -> None:
    """Background task for a manually triggered historical sync"""
    try:
        result = await service.sync_historical_data()
        sync_state["last_result"] = result
    except Exception as e:
        logger.error(f"Manual historical data sync failed: {e}", exc_info=True)
    finally:
        sync_state["historical_sync_in_progress"] = False


async def run_scheduled_sync(service: TicketAnalysisService) -> Optional[SyncResult]:
    """
    One scheduled sync cycle, sharing the in-progress flag with manual syncs

    Returns:
        SyncResult, or None if a manual sync was already running
    """
    if sync_state["historical_sync_in_progress"]:
        logger.info("Skipping scheduled historical data sync: a sync is already running")
        return None

    sync_state["historical_sync_in_progress"] = True
    try:
        result = await service.sync_historical_data()
        sync_state["last_result"] = result
        return result
    finally:
        sync_state["historical_sync_in_progress"] = False


@router.post("/sync-historical", status_code=status.HTTP_202_ACCEPTED)
async def sync_historical_data(
    background_tasks: BackgroundTasks,
    service: TicketAnalysisService = Depends(get_analysis_service)
):
    """
    Start one full historical data sync in the background

    Raises:
        HTTPException 409: If a manual or scheduled sync is already running
    """
    if sync_state["historical_sync_in_progress"]:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Historical data sync already in progress"
        )

    sync_state["historical_sync_in_progress"] = True
    background_tasks.add_task(run_historical_sync, service)
    return {"message": "Historical data sync started"}
