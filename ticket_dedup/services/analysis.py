"""
Ticket Analysis Service

Coordinates the ticket source, the local store and the match ranker.

Webhook pipeline (one notification):
1. Received   - ignore anything but "ticket created"
2. Fetched    - load the full ticket from the source
3. Persisted  - upsert it into the local store
4. Ranked     - rank the historical corpus against it
5. Annotated  - record related tickets and comment the matches on the ticket

Each step may end the pipeline early. A failure is logged and reported in the
returned PipelineOutcome; earlier steps are not rolled back.

Also serves ad-hoc analysis, ad-hoc search (local + live results) and the
historical corpus sync.
"""
from typing import Any, Awaitable, List, Optional, Sequence

from ticket_dedup.config import Settings, get_settings
from ticket_dedup.models.schemas import (
    AnalysisRequest,
    AnalysisResponse,
    JiraWebhookEvent,
    LiveTicket,
    PipelineOutcome,
    PipelineStage,
    ProjectSyncResult,
    SearchResponse,
    SimilarityResult,
    SyncResult,
    TicketRecord,
    utc_now,
)
from ticket_dedup.services.merger import build_search_query, merge_search_results
from ticket_dedup.services.ranker import MatchRanker
from ticket_dedup.services.similarity import SimilarityScorer
from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

CORPUS_PAGE_SIZE = 1000
MAX_COMMENT_MATCHES = 5
MAX_COMMENT_FILES = 3


class TicketAnalysisService:
    """
    Service layer for similarity analysis and corpus maintenance.

    Collaborators are injected so that tests can substitute them:
    - source: ticket source (get_ticket, search_tickets, get_project_tickets, add_comment)
    - store: local store (TicketRepository interface)
    - ranker: MatchRanker
    """

    def __init__(
        self,
        source=None,
        store=None,
        ranker: Optional[MatchRanker] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()

        if source is None:
            from ticket_dedup.services.jira import JiraClient
            source = JiraClient(self.settings)
        if store is None:
            from ticket_dedup.repositories.ticket_repository import TicketRepository
            store = TicketRepository()

        self.source = source
        self.store = store
        self.ranker = ranker or MatchRanker(SimilarityScorer(self.settings.similarity_weights))

    # ------------------------------------------------------------------
    # Ad-hoc analysis
    # ------------------------------------------------------------------

    async def analyze_ticket(self, request: AnalysisRequest) -> AnalysisResponse:
        """
        Find historical tickets similar to a candidate ticket

        Never raises: a store failure is reported as success=False.
        """
        logger.info(f"Starting analysis for ticket with title: {request.title}")
        try:
            corpus = await self._load_corpus(request.project_key)
            if not corpus:
                logger.warning("No historical tickets found for analysis")
                return AnalysisResponse(
                    success=True,
                    message="No historical tickets available for comparison"
                )

            similar = self.ranker.rank(request, corpus)
            logger.info(f"Found {len(similar)} similar tickets")

            return AnalysisResponse(
                success=True,
                message=f"Analysis completed. Found {len(similar)} similar tickets.",
                similar_tickets=similar,
                total_matches=len(similar)
            )

        except Exception as e:
            logger.error(f"Error analyzing new ticket: {e}", exc_info=True)
            return AnalysisResponse(success=False, message=f"Error during analysis: {e}")

    # ------------------------------------------------------------------
    # Webhook pipeline
    # ------------------------------------------------------------------

    async def process_webhook(self, event: JiraWebhookEvent) -> PipelineOutcome:
        """
        Run the analysis pipeline for one webhook notification

        Args:
            event: Parsed webhook notification

        Returns:
            PipelineOutcome with the last stage reached
        """
        ticket_key = event.ticket_key
        outcome = PipelineOutcome(ticket_key=ticket_key)
        logger.info(f"Processing webhook for event: {event.webhook_event}")

        if not event.is_ticket_created:
            logger.debug(f"Ignoring webhook event: {event.webhook_event}")
            return outcome
        if not ticket_key:
            logger.warning("Ticket created webhook without an issue key")
            return outcome

        try:
            ticket = await self._from_source(
                f"fetch of {ticket_key}", self.source.get_ticket(ticket_key), None
            )
            if ticket is None:
                logger.warning(f"Could not retrieve ticket details for {ticket_key}")
                return outcome
            outcome.stage = PipelineStage.FETCHED

            await self.store.upsert(ticket)
            outcome.stage = PipelineStage.PERSISTED

            request = AnalysisRequest(
                title=ticket.title,
                description=ticket.description,
                affected_files=ticket.affected_files,
                pull_request_url=ticket.pull_request_url,
                project_key=ticket.project_key,
                minimum_similarity_threshold=self.settings.minimum_similarity_threshold,
                max_results=self.settings.max_similar_tickets
            )
            corpus = await self._load_corpus(ticket.project_key, exclude_key=ticket.ticket_key)
            similar = self.ranker.rank(request, corpus)
            outcome.stage = PipelineStage.RANKED
            outcome.matched_keys = [result.ticket_key for result in similar]

            if not similar:
                logger.info(f"No similar tickets found for {ticket_key}")
                outcome.completed = True
                return outcome

            await self.store.set_related_tickets(ticket.ticket_key, outcome.matched_keys)

            comment = build_similar_tickets_comment(similar)
            outcome.annotated = await self._from_source(
                f"comment on {ticket_key}", self.source.add_comment(ticket_key, comment), False
            )
            if outcome.annotated:
                outcome.stage = PipelineStage.ANNOTATED
                logger.info(f"Added similar tickets comment to {ticket_key}")
            else:
                logger.warning(f"Similar tickets for {ticket_key} found but comment was not added")

            outcome.completed = True
            return outcome

        except Exception as e:
            logger.error(
                f"Error processing webhook for ticket {ticket_key} at stage {outcome.stage.value}: {e}",
                exc_info=True
            )
            outcome.error = str(e)
            return outcome

    # ------------------------------------------------------------------
    # Historical sync
    # ------------------------------------------------------------------

    async def sync_historical_data(self) -> SyncResult:
        """
        Pull the recent history of every tracked project into the store

        A failing project is recorded and the remaining projects still sync.
        """
        result = SyncResult(success=True)
        logger.info("Starting historical data sync")

        for project_key in self.settings.target_projects:
            logger.info(f"Syncing project: {project_key}")
            try:
                tickets = await self.source.get_project_tickets(
                    project_key, self.settings.jira_max_historical_tickets
                )
                synced = await self.store.bulk_upsert(tickets) if tickets else 0
                result.projects.append(ProjectSyncResult(project_key=project_key, tickets_synced=synced))
                result.items_synced += synced
                logger.info(f"Synced {synced} tickets for project {project_key}")

            except Exception as e:
                error_msg = f"Failed to sync project {project_key}: {e}"
                logger.error(error_msg)
                result.projects.append(ProjectSyncResult(project_key=project_key, error=str(e)))
                result.errors.append(error_msg)

        result.success = not result.errors
        result.finished_at = utc_now()
        logger.info(
            f"Historical data sync completed: {result.items_synced} tickets, "
            f"{len(result.errors)} errors"
        )
        return result

    # ------------------------------------------------------------------
    # Ad-hoc search and refresh
    # ------------------------------------------------------------------

    async def search_tickets(
        self,
        search_term: str,
        offset: int = 0,
        limit: int = 100,
        include_live: bool = True,
        live_only: bool = False,
        save_live: bool = False
    ) -> SearchResponse:
        """
        Search the local store and, optionally, the ticket source

        Local hits take precedence over live hits with the same key.
        Pagination is applied to the merged list.

        Args:
            live_only: Skip the local store and query only the ticket source
            save_live: Write every live-only hit to the local store; the hits
                keep their "live" tag in this response
        """
        window = offset + limit
        local: List[TicketRecord] = []
        if not live_only:
            local = await self.store.search(search_term, 0, window)

        live: List[TicketRecord] = []
        if include_live or live_only:
            query = build_search_query(search_term)
            live = await self._from_source(
                f"search '{query}'", self.source.search_tickets(query, window), []
            )

        merged = merge_search_results(local, live)

        saved_count = 0
        if save_live:
            live_tickets = [hit.ticket for hit in merged if isinstance(hit, LiveTicket)]
            if live_tickets:
                saved_count = await self.store.bulk_upsert(live_tickets)
                logger.info(f"Saved {saved_count} tickets from live search to the local store")

        page = merged[offset:offset + limit]
        live_count = sum(1 for hit in page if isinstance(hit, LiveTicket))

        return SearchResponse(
            query=search_term,
            results=page,
            total=len(merged),
            persisted_count=len(page) - live_count,
            live_count=live_count,
            saved_count=saved_count
        )

    async def refresh_ticket(self, ticket_key: str) -> Optional[TicketRecord]:
        """
        Re-fetch a ticket from the source and store it

        Returns:
            Stored ticket, or None if the source does not have it
        """
        ticket = await self._from_source(
            f"fetch of {ticket_key}", self.source.get_ticket(ticket_key), None
        )
        if ticket is None:
            return None
        return await self.store.upsert(ticket)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_corpus(
        self,
        project_key: str,
        exclude_key: Optional[str] = None
    ) -> List[TicketRecord]:
        """Historical tickets of the project, or of all projects if none given"""
        if project_key:
            corpus = await self.store.get_by_project(project_key, 0, CORPUS_PAGE_SIZE)
        else:
            corpus = await self.store.get_all(0, CORPUS_PAGE_SIZE)

        if exclude_key:
            corpus = [t for t in corpus if not t.key_matches(exclude_key)]
        return corpus

    @staticmethod
    async def _from_source(description: str, call: Awaitable[Any], default: Any) -> Any:
        """Await a ticket source call, treating any failure as no result"""
        try:
            return await call
        except Exception as e:
            logger.warning(f"Ticket source unavailable during {description}: {e}")
            return default


def build_similar_tickets_comment(similar_tickets: Sequence[SimilarityResult]) -> str:
    """
    Comment text listing the top matches

    Shows up to 5 matches with score, reason, dates or status, PR link and
    up to 3 affected files each.
    """
    lines = [
        "Similar Tickets Found",
        "",
        "The following tickets might be related to this issue:",
        "",
    ]

    for ticket in list(similar_tickets)[:MAX_COMMENT_MATCHES]:
        lines.append(f"- {ticket.ticket_key} - {ticket.title}")
        lines.append(f"  Similarity: {ticket.similarity_score:.0%} ({ticket.match_reason})")

        created = ticket.created_date.strftime("%Y-%m-%d") if ticket.created_date else "unknown"
        if ticket.resolved_date:
            status_line = f"  Created: {created} | Resolved: {ticket.resolved_date:%Y-%m-%d}"
            if ticket.resolution:
                status_line += f" ({ticket.resolution})"
        else:
            status_line = f"  Created: {created} | Status: {ticket.status}"
        lines.append(status_line)

        if ticket.pull_request_url:
            lines.append(f"  PR: {ticket.pull_request_url}")

        if ticket.affected_files:
            files_line = f"  Files: {', '.join(ticket.affected_files[:MAX_COMMENT_FILES])}"
            extra = len(ticket.affected_files) - MAX_COMMENT_FILES
            if extra > 0:
                files_line += f" (and {extra} more)"
            lines.append(files_line)

        lines.append("")

    lines.append("---")
    lines.append("This analysis was generated automatically by the Related Ticket Finder.")
    return "\n".join(lines)
