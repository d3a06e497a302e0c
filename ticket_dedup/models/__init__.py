"""
Pydantic models for the Related Ticket Finder
"""

from ticket_dedup.models.schemas import (
    # Enums
    PipelineStage,

    # Configuration Models
    SimilarityWeights,

    # Database Models
    TicketRecord,

    # Analysis Models
    AnalysisRequest,
    SimilarityResult,
    AnalysisResponse,

    # Search Models
    PersistedTicket,
    LiveTicket,
    SearchHit,
    SearchResponse,

    # Webhook / Sync Models
    JiraWebhookEvent,
    PipelineOutcome,
    ProjectSyncResult,
    SyncResult,
    TicketStatistics,
)

__all__ = [
    "PipelineStage",
    "SimilarityWeights",
    "TicketRecord",
    "AnalysisRequest",
    "SimilarityResult",
    "AnalysisResponse",
    "PersistedTicket",
    "LiveTicket",
    "SearchHit",
    "SearchResponse",
    "JiraWebhookEvent",
    "PipelineOutcome",
    "ProjectSyncResult",
    "SyncResult",
    "TicketStatistics",
]
