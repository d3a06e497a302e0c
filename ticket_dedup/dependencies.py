"""
Shared service instances for the HTTP layer

Instances are created on first use so that importing the app never needs a
reachable store or ticket source. Tests replace them through
app.dependency_overrides.
"""
from functools import lru_cache

from ticket_dedup.services.analysis import TicketAnalysisService


@lru_cache()
def get_analysis_service() -> TicketAnalysisService:
    """Get cached analysis service (Jira source + Supabase store)"""
    return TicketAnalysisService()
