"""
Health check endpoints with dependency monitoring

Provides two endpoints:
- GET /api/v1/health - Basic health check
- GET /api/v1/health/dependencies - Ticket store and Jira status
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ticket_dedup import __version__
from ticket_dedup.dependencies import get_analysis_service
from ticket_dedup.services.analysis import TicketAnalysisService
from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["health"])

# Application start time for uptime calculation
APP_START_TIME = time.time()

# Cache for dependency check results (30 seconds TTL)
_dependency_cache: Optional["DependencyHealth"] = None
_cache_timestamp: float = 0.0
CACHE_TTL_SECONDS = 30.0
CHECK_TIMEOUT_SECONDS = 5.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_now)
    version: str
    uptime_seconds: float


class DependencyStatus(BaseModel):
    """Status of a single dependency"""
    name: str
    status: str = Field(..., description="Status: healthy, degraded, unhealthy")
    latency_ms: Optional[float] = None
    error_message: Optional[str] = None


class DependencyHealth(BaseModel):
    """Dependency health check response"""
    overall_status: str
    dependencies: Dict[str, DependencyStatus]
    checked_at: datetime = Field(default_factory=_now)


async def check_ticket_store(service: TicketAnalysisService) -> DependencyStatus:
    """Count rows in the tickets table"""
    start = time.time()
    try:
        await asyncio.wait_for(service.store.count(), timeout=CHECK_TIMEOUT_SECONDS)
        return DependencyStatus(
            name="ticket_store",
            status="healthy",
            latency_ms=round((time.time() - start) * 1000, 2)
        )
    except asyncio.TimeoutError:
        logger.error("Ticket store health check timed out")
        return DependencyStatus(
            name="ticket_store",
            status="unhealthy",
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:.0f} seconds"
        )
    except Exception as e:
        logger.error(f"Ticket store health check failed: {e}")
        return DependencyStatus(name="ticket_store", status="unhealthy", error_message=str(e))


async def check_jira(service: TicketAnalysisService) -> DependencyStatus:
    """Authenticated call to Jira; degraded rather than unhealthy when down"""
    start = time.time()
    try:
        reachable = await asyncio.wait_for(service.source.ping(), timeout=CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        reachable = False
    except Exception as e:
        logger.error(f"Jira health check failed: {e}")
        reachable = False

    if not reachable:
        return DependencyStatus(
            name="jira",
            status="degraded",
            error_message="Jira is not reachable with the configured credentials"
        )
    return DependencyStatus(
        name="jira",
        status="healthy",
        latency_ms=round((time.time() - start) * 1000, 2)
    )


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> str:
    """
    Overall status from dependency health

    The ticket store is critical: analysis cannot run without it. Jira being
    down only degrades the service (webhooks and live search).
    """
    store = dependencies.get("ticket_store")
    if store is not None and store.status == "unhealthy":
        return "unhealthy"

    if any(dep.status in ("degraded", "unhealthy") for dep in dependencies.values()):
        return "degraded"
    return "healthy"


@router.get("/", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def basic_health_check() -> HealthResponse:
    """
    Basic health check endpoint

    Always returns 200 OK. Does not check external dependencies.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=round(time.time() - APP_START_TIME, 2)
    )


@router.get("/dependencies", response_model=DependencyHealth, status_code=status.HTTP_200_OK)
async def dependency_health_check(
    service: TicketAnalysisService = Depends(get_analysis_service)
) -> DependencyHealth:
    """
    Check the ticket store and Jira

    Results are cached for 30 seconds to avoid overwhelming external services.
    """
    global _dependency_cache, _cache_timestamp

    current_time = time.time()
    if _dependency_cache and (current_time - _cache_timestamp) < CACHE_TTL_SECONDS:
        logger.debug("Returning cached dependency health check results")
        return _dependency_cache

    logger.info("Performing dependency health checks")
    store_status, jira_status = await asyncio.gather(
        check_ticket_store(service),
        check_jira(service)
    )
    dependencies = {"ticket_store": store_status, "jira": jira_status}

    response = DependencyHealth(
        overall_status=determine_overall_status(dependencies),
        dependencies=dependencies
    )

    _dependency_cache = response
    _cache_timestamp = current_time

    unhealthy = [name for name, dep in dependencies.items() if dep.status != "healthy"]
    if unhealthy:
        logger.warning(f"Dependencies not healthy: {', '.join(unhealthy)}")

    return response
