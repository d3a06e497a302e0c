"""
Match Ranker

Turns a candidate ticket and a historical corpus into a ranked, explained
list of likely duplicates:
1. Scope the corpus to the requested project (if any)
2. Score every candidate against the request
3. Keep scores at or above the threshold
4. Sort by score (stable) and keep the top N
5. Explain each surviving match
"""
from typing import List, Optional, Sequence

from ticket_dedup.models.schemas import (
    AnalysisRequest,
    SimilarityResult,
    TicketRecord,
)
from ticket_dedup.services.similarity import SimilarityScorer
from ticket_dedup.utils.logger import get_logger

logger = get_logger(__name__)

# Explanation thresholds; independent of the ranking threshold and weights
TITLE_REASON_THRESHOLD = 0.5
DESCRIPTION_REASON_THRESHOLD = 0.3
FILES_REASON_THRESHOLD = 0.5

REQUEST_TICKET_KEY = "ANALYSIS-REQUEST"


class MatchRanker:
    """Ranks a historical corpus against an analysis request"""

    def __init__(self, scorer: Optional[SimilarityScorer] = None):
        self.scorer = scorer or SimilarityScorer()

    def rank(
        self,
        request: AnalysisRequest,
        corpus: Sequence[TicketRecord]
    ) -> List[SimilarityResult]:
        """
        Find tickets in the corpus similar to the request

        Args:
            request: Candidate ticket and ranking parameters
            corpus: Historical tickets to compare against

        Returns:
            At most request.max_results results, highest score first
        """
        request_ticket = self._request_ticket(request)

        candidates = corpus
        if request.project_key:
            candidates = [t for t in corpus if t.project_key == request.project_key]

        scored = []
        for ticket in candidates:
            similarity = self.scorer.score(request_ticket, ticket)
            if similarity >= request.minimum_similarity_threshold:
                scored.append((similarity, ticket))

        # sorted() is stable: ties keep corpus order
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)
        scored = scored[:request.max_results]

        logger.debug(
            f"Ranked {len(candidates)} candidates, {len(scored)} above "
            f"threshold {request.minimum_similarity_threshold}"
        )

        return [
            self._to_result(request_ticket, ticket, similarity)
            for similarity, ticket in scored
        ]

    def match_reason(
        self,
        new_ticket: TicketRecord,
        historical_ticket: TicketRecord,
        similarity: float
    ) -> str:
        """
        Human-readable explanation of a match

        Example: "Similar title (67%), Common affected files (100%) (Overall: 58%)"
        """
        reasons = []

        title_sim = self.scorer.text_similarity(new_ticket.title, historical_ticket.title)
        if title_sim > TITLE_REASON_THRESHOLD:
            reasons.append(f"Similar title ({title_sim:.0%})")

        description_sim = self.scorer.text_similarity(
            new_ticket.description, historical_ticket.description
        )
        if description_sim > DESCRIPTION_REASON_THRESHOLD:
            reasons.append(f"Similar description ({description_sim:.0%})")

        file_sim = self.scorer.file_path_similarity(
            new_ticket.affected_files, historical_ticket.affected_files
        )
        if file_sim > FILES_REASON_THRESHOLD:
            reasons.append(f"Common affected files ({file_sim:.0%})")

        if not reasons:
            reasons.append("General similarity")

        return ", ".join(reasons) + f" (Overall: {similarity:.0%})"

    @staticmethod
    def _request_ticket(request: AnalysisRequest) -> TicketRecord:
        return TicketRecord(
            ticket_key=REQUEST_TICKET_KEY,
            title=request.title,
            description=request.description,
            affected_files=list(request.affected_files),
            pull_request_url=request.pull_request_url,
            project_key=request.project_key,
        )

    def _to_result(
        self,
        request_ticket: TicketRecord,
        ticket: TicketRecord,
        similarity: float
    ) -> SimilarityResult:
        return SimilarityResult(
            ticket_key=ticket.ticket_key,
            title=ticket.title,
            description=ticket.description,
            similarity_score=similarity,
            match_reason=self.match_reason(request_ticket, ticket, similarity),
            created_date=ticket.created_date,
            resolved_date=ticket.resolved_date,
            status=ticket.status,
            resolution=ticket.resolution,
            affected_files=list(ticket.affected_files),
            pull_request_url=ticket.pull_request_url,
        )
