"""
Business Logic Services
"""
from .similarity import SimilarityScorer
from .ranker import MatchRanker
from .merger import merge_search_results, build_search_query
from .analysis import TicketAnalysisService
from .scheduler import HistoricalSyncScheduler
from .jira import JiraClient

__all__ = [
    "SimilarityScorer",
    "MatchRanker",
    "merge_search_results",
    "build_search_query",
    "TicketAnalysisService",
    "HistoricalSyncScheduler",
    "JiraClient",
]
