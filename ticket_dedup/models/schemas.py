"""
Pydantic models for the Related Ticket Finder

This module contains the ticket record persisted in the local store, the
request/response models of the similarity analysis, the provenance-tagged
search hits used by ad-hoc search, and the outcome models reported by the
webhook pipeline and the historical sync.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List, Literal, Union, ClassVar

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing_extensions import Annotated


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================

class PipelineStage(str, Enum):
    """Stages of the webhook analysis pipeline, in order"""
    RECEIVED = "received"
    FETCHED = "fetched"
    PERSISTED = "persisted"
    RANKED = "ranked"
    ANNOTATED = "annotated"


# ============================================================================
# Configuration Models
# ============================================================================

class SimilarityWeights(BaseModel):
    """
    Weights of the four similarity sub-scores.

    They should sum to roughly 1.0. No re-normalisation is applied, so an
    off-balance configuration produces off-balance scores.
    """
    model_config = ConfigDict(frozen=True)

    title: float = Field(0.4, ge=0.0)
    description: float = Field(0.3, ge=0.0)
    file_path: float = Field(0.25, ge=0.0)
    label: float = Field(0.05, ge=0.0)

    @property
    def total(self) -> float:
        return self.title + self.description + self.file_path + self.label


# ============================================================================
# Database Models (matching the tickets table)
# ============================================================================

_STRING_FIELDS = (
    "title", "description", "ticket_type", "status", "priority", "assignee",
    "reporter", "project_key", "pull_request_url", "resolution",
)
_LIST_FIELDS = (
    "labels", "components", "affected_files", "pr_links", "fix_versions",
    "related_tickets",
)


class TicketRecord(BaseModel):
    """
    Normalized ticket as seen by the similarity core.

    This model matches the `tickets` table. The ticket key is the identity:
    the store holds exactly one row per key. `similarity_score` is transient
    and never written to the store.

    Attributes:
        ticket_key: Unique ticket key (e.g. "BUG-201"), case-insensitive for matching
        title: Ticket summary
        description: Plain-text description
        project_key: Owning project key, used for scoping
        labels: Ticket labels
        components: Ticket components
        affected_files: File paths mentioned by the ticket (order irrelevant)
        pull_request_url: Primary linked PR, if any
        pr_links: All linked PRs found in the ticket
        related_tickets: Keys of matches discovered by the analysis pipeline
        created_date / updated_date / resolved_date: Lifecycle timestamps
        similarity_score: Score of the current ranking pass only
    """
    model_config = ConfigDict(from_attributes=True)

    ticket_key: str = Field(..., min_length=1, max_length=255, description="Ticket key")
    title: str = Field("", description="Ticket summary")
    description: str = Field("", description="Plain-text description")
    ticket_type: str = Field("", description="Bug, Story, Task, ...")
    status: str = ""
    priority: str = ""
    assignee: str = ""
    reporter: str = ""
    project_key: str = ""
    labels: List[str] = Field(default_factory=list)
    components: List[str] = Field(default_factory=list)
    affected_files: List[str] = Field(default_factory=list)
    pull_request_url: str = ""
    pr_links: List[str] = Field(default_factory=list)
    resolution: str = ""
    fix_versions: List[str] = Field(default_factory=list)
    created_date: datetime = Field(default_factory=utc_now)
    updated_date: Optional[datetime] = None
    resolved_date: Optional[datetime] = None
    related_tickets: List[str] = Field(default_factory=list)
    similarity_score: float = Field(0.0, exclude=True, description="Transient ranking score")

    @field_validator(*_STRING_FIELDS, mode="before")
    @classmethod
    def none_to_empty_string(cls, v: Any) -> Any:
        """Store rows and source payloads may carry NULLs for text columns"""
        return "" if v is None else v

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def none_to_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    def key_matches(self, other_key: str) -> bool:
        """Case-insensitive ticket key comparison"""
        return self.ticket_key.casefold() == (other_key or "").casefold()

    def to_row(self) -> Dict[str, Any]:
        """Serialize for the store (the transient score is excluded)"""
        return self.model_dump(mode="json")


# ============================================================================
# Analysis Models
# ============================================================================

class AnalysisRequest(BaseModel):
    """
    Candidate ticket to compare against the historical corpus.

    An empty title is rejected here, before any scoring takes place.
    """
    title: str = Field(..., description="Candidate ticket title")
    description: str = ""
    affected_files: List[str] = Field(default_factory=list)
    pull_request_url: str = ""
    project_key: str = Field("", description="Restrict the corpus to this project when set")
    minimum_similarity_threshold: float = Field(0.3, ge=0.0, le=1.0)
    max_results: int = Field(10, ge=1, le=100)

    @field_validator("title")
    @classmethod
    def title_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Title is required for analysis")
        return v

    @field_validator("description", "project_key", "pull_request_url", mode="before")
    @classmethod
    def none_to_empty_string(cls, v: Any) -> Any:
        return "" if v is None else v


class SimilarityResult(BaseModel):
    """One ranked match. Produced fresh per ranking call, never persisted."""
    ticket_key: str
    title: str = ""
    description: str = ""
    similarity_score: float = Field(..., ge=0.0, description="Weighted score, 3 decimals")
    match_reason: str = ""
    created_date: Optional[datetime] = None
    resolved_date: Optional[datetime] = None
    status: str = ""
    resolution: str = ""
    affected_files: List[str] = Field(default_factory=list)
    pull_request_url: str = ""


class AnalysisResponse(BaseModel):
    """Result of an analysis call"""
    success: bool
    message: str = ""
    similar_tickets: List[SimilarityResult] = Field(default_factory=list)
    total_matches: int = 0


# ============================================================================
# Search Models
# ============================================================================

class PersistedTicket(BaseModel):
    """Search hit that already exists in the local store"""
    source: Literal["persisted"] = "persisted"
    ticket: TicketRecord


class LiveTicket(BaseModel):
    """Search hit fetched live from the ticket source, not yet persisted"""
    source: Literal["live"] = "live"
    ticket: TicketRecord


SearchHit = Annotated[Union[PersistedTicket, LiveTicket], Field(discriminator="source")]


class SearchResponse(BaseModel):
    """Ad-hoc search results with provenance"""
    query: str
    results: List[SearchHit] = Field(default_factory=list)
    total: int = 0
    persisted_count: int = 0
    live_count: int = 0
    saved_count: int = Field(0, description="Live hits written to the local store by this search")


# ============================================================================
# Webhook Models
# ============================================================================

class WebhookIssue(BaseModel):
    """Issue reference carried by a webhook notification"""
    model_config = ConfigDict(extra="allow")

    key: str = ""


class JiraWebhookEvent(BaseModel):
    """
    Inbound notification from the ticket source.

    Only the event type and the issue key are used; the rest of the payload
    is accepted and ignored.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    TICKET_CREATED: ClassVar[str] = "jira:issue_created"

    webhook_event: str = Field("", alias="webhookEvent")
    issue: Optional[WebhookIssue] = None

    @property
    def ticket_key(self) -> str:
        return self.issue.key if self.issue else ""

    @property
    def is_ticket_created(self) -> bool:
        return self.webhook_event == self.TICKET_CREATED


class PipelineOutcome(BaseModel):
    """What the webhook pipeline did for one notification"""
    ticket_key: str = ""
    stage: PipelineStage = PipelineStage.RECEIVED
    completed: bool = False
    matched_keys: List[str] = Field(default_factory=list)
    annotated: bool = False
    error: Optional[str] = None


# ============================================================================
# Sync Models
# ============================================================================

class ProjectSyncResult(BaseModel):
    """Sync statistics for one tracked project"""
    project_key: str
    tickets_synced: int = 0
    error: Optional[str] = None


class SyncResult(BaseModel):
    """Outcome of one full historical sync"""
    success: bool
    items_synced: int = 0
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    projects: List[ProjectSyncResult] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class TicketStatistics(BaseModel):
    """Store statistics"""
    total_tickets: int
    tracked_projects: List[str] = Field(default_factory=list)
    sync_enabled: bool = False
    sync_running: bool = False
