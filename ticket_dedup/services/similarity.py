"""
Similarity Scorer

Compares two tickets on four signals and combines them into one weighted
score:
- Title text similarity
- Description text similarity
- Affected file path similarity
- Label similarity

Text similarity blends word-level Jaccard (70%) with bigram Jaccard (30%) so
that shared word order counts for something.
"""
from typing import List, Optional

from ticket_dedup.models.schemas import SimilarityWeights, TicketRecord
from ticket_dedup.utils.normalizer import (
    bigrams,
    jaccard,
    lowercase_set,
    normalize_path,
    normalize_text,
    path_segments,
)

WORD_WEIGHT = 0.7
BIGRAM_WEIGHT = 0.3

SAME_FILENAME_SCORE = 0.8
DIRECTORY_OVERLAP_FACTOR = 0.5


class SimilarityScorer:
    """
    Weighted ticket-to-ticket similarity

    Holds no mutable state; a single instance can score any number of
    candidate pairs concurrently.
    """

    def __init__(self, weights: Optional[SimilarityWeights] = None):
        """
        Args:
            weights: Sub-score weights (uses configured weights if None)
        """
        if weights is None:
            from ticket_dedup.config import get_settings
            weights = get_settings().similarity_weights
        self.weights = weights

    def score(self, ticket1: TicketRecord, ticket2: TicketRecord) -> float:
        """
        Weighted similarity of two tickets, rounded to 3 decimals

        Returns:
            Score in [0, sum of weights]
        """
        title_sim = self.text_similarity(ticket1.title, ticket2.title)
        description_sim = self.text_similarity(ticket1.description, ticket2.description)
        file_sim = self.file_path_similarity(ticket1.affected_files, ticket2.affected_files)
        label_sim = self.label_similarity(ticket1.labels, ticket2.labels)

        weighted = (
            title_sim * self.weights.title
            + description_sim * self.weights.description
            + file_sim * self.weights.file_path
            + label_sim * self.weights.label
        )
        return round(weighted, 3)

    @staticmethod
    def text_similarity(text1: str, text2: str) -> float:
        """
        Blend of word Jaccard and bigram Jaccard

        Returns 0.0 if either text is empty or has no qualifying tokens.
        """
        if not text1 or not text2:
            return 0.0

        words1 = normalize_text(text1)
        words2 = normalize_text(text2)
        if not words1 or not words2:
            return 0.0

        word_sim = jaccard(set(words1), set(words2))
        bigram_sim = jaccard(set(bigrams(words1)), set(bigrams(words2)))

        return word_sim * WORD_WEIGHT + bigram_sim * BIGRAM_WEIGHT

    @staticmethod
    def file_path_similarity(files1: List[str], files2: List[str]) -> float:
        """
        Overlap of affected files

        Exact path matches score by share of the larger set. Without any
        exact match, the best partial match between any two paths is used.
        """
        if not files1 or not files2:
            return 0.0

        paths1 = {normalize_path(f) for f in files1}
        paths2 = {normalize_path(f) for f in files2}

        exact_matches = len(paths1 & paths2)
        if exact_matches > 0:
            return min(1.0, exact_matches / max(len(paths1), len(paths2)))

        best = 0.0
        for path1 in paths1:
            for path2 in paths2:
                best = max(best, SimilarityScorer.path_similarity(path1, path2))
        return best

    @staticmethod
    def path_similarity(path1: str, path2: str) -> float:
        """
        Partial similarity of two normalized paths

        Same file name scores 0.8. Otherwise the share of common directory
        segments, scaled by 0.5; 0 when either path has no directory part.
        """
        parts1 = path_segments(path1)
        parts2 = path_segments(path2)
        if not parts1 or not parts2:
            return 0.0

        if parts1[-1] == parts2[-1]:
            return SAME_FILENAME_SCORE

        dirs1 = parts1[:-1]
        dirs2 = parts2[:-1]
        if not dirs1 or not dirs2:
            return 0.0

        common = len(set(dirs1) & set(dirs2))
        return common / max(len(dirs1), len(dirs2)) * DIRECTORY_OVERLAP_FACTOR

    @staticmethod
    def label_similarity(labels1: List[str], labels2: List[str]) -> float:
        """Jaccard over lowercased labels, 0.0 if either side has none"""
        set1 = lowercase_set(labels1)
        set2 = lowercase_set(labels2)
        if not set1 or not set2:
            return 0.0
        return jaccard(set1, set2)
