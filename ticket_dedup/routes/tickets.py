"""
Ticket-related API routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ticket_dedup.dependencies import get_analysis_service
from ticket_dedup.models.schemas import SearchResponse, TicketRecord, TicketStatistics
from ticket_dedup.routes.analysis import sync_state
from ticket_dedup.services.analysis import TicketAnalysisService
from ticket_dedup.utils.logger import get_logger
from ticket_dedup.utils.validators import sanitize_input

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])
logger = get_logger(__name__)


@router.get("/", response_model=List[TicketRecord])
async def list_tickets(
    response: Response,
    project: Optional[str] = Query(None, description="Only tickets of this project"),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: TicketAnalysisService = Depends(get_analysis_service)
):
    """List persisted tickets, newest first"""
    if project:
        tickets = await service.store.get_by_project(project, offset, limit)
    else:
        tickets = await service.store.get_all(offset, limit)

    response.headers["X-Total-Count"] = str(await service.store.count())
    return tickets


@router.get("/statistics", response_model=TicketStatistics)
async def get_statistics(service: TicketAnalysisService = Depends(get_analysis_service)):
    """Persisted ticket count and sync configuration"""
    settings = service.settings
    return TicketStatistics(
        total_tickets=await service.store.count(),
        tracked_projects=settings.target_projects,
        sync_enabled=settings.enable_historical_data_sync,
        sync_running=sync_state["historical_sync_in_progress"],
    )


@router.get("/search", response_model=SearchResponse)
async def search_tickets(
    q: str = Query(..., min_length=1, description="Search term, ticket key or field:value"),
    include_live: bool = Query(True, description="Also search Jira directly"),
    live_only: bool = Query(False, description="Search only Jira, skip persisted tickets"),
    save_live: bool = Query(False, description="Store tickets found only in Jira"),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    service: TicketAnalysisService = Depends(get_analysis_service)
):
    """
    Search persisted tickets and, optionally, Jira

    Every hit is tagged "persisted" or "live".
    """
    term = sanitize_input(q, max_length=500)
    if not term:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Search term is empty")
    return await service.search_tickets(
        term, offset, limit, include_live, live_only=live_only, save_live=save_live
    )


@router.get("/{ticket_key}", response_model=TicketRecord)
async def get_ticket(
    ticket_key: str,
    service: TicketAnalysisService = Depends(get_analysis_service)
):
    """
    Get a persisted ticket by key

    Raises:
        HTTPException 404: If the ticket is not stored
    """
    ticket = await service.store.get_by_key(ticket_key)
    if ticket is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Ticket {ticket_key} not found"
        )
    return ticket


@router.post("/{ticket_key}/refresh", response_model=TicketRecord)
async def refresh_ticket(
    ticket_key: str,
    service: TicketAnalysisService = Depends(get_analysis_service)
):
    """
    Re-fetch a ticket from Jira and store it

    Raises:
        HTTPException 404: If Jira does not have the ticket
    """
    ticket = await service.refresh_ticket(ticket_key)
    if ticket is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Ticket {ticket_key} not found in Jira"
        )
    logger.info(f"Refreshed ticket {ticket_key}")
    return ticket
