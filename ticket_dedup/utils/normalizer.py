"""
Text and file path normalization for similarity scoring

All functions are pure and return empty output for empty input.
"""
import re
from typing import Iterable, List, Set, Hashable

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 3


def normalize_text(text: str) -> List[str]:
    """
    Tokenize free text for comparison

    Lowercases, turns punctuation into spaces, collapses whitespace and drops
    tokens shorter than three characters. Token order is preserved so that
    bigrams can be built from the result.

    Args:
        text: Raw text

    Returns:
        Ordered list of tokens
    """
    if not text:
        return []

    text = _NON_WORD.sub(" ", text.lower())
    text = _WHITESPACE.sub(" ", text).strip()
    if not text:
        return []

    return [token for token in text.split(" ") if len(token) >= MIN_TOKEN_LENGTH]


def bigrams(tokens: List[str]) -> List[str]:
    """Adjacent token pairs joined by a single space"""
    return [f"{tokens[i]} {tokens[i + 1]}" for i in range(len(tokens) - 1)]


def normalize_path(path: str) -> str:
    """Canonical form of a file path: forward slashes, lowercase"""
    if not path:
        return ""
    return path.replace("\\", "/").lower()


def path_segments(path: str) -> List[str]:
    """Non-empty segments of an already normalized path"""
    return [part for part in path.split("/") if part]


def jaccard(set1: Set[Hashable], set2: Set[Hashable]) -> float:
    """
    Jaccard similarity |A ∩ B| / |A ∪ B|

    Two empty sets are considered identical (1.0).
    """
    if not set1 and not set2:
        return 1.0
    union = set1 | set2
    return len(set1 & set2) / len(union)


def lowercase_set(values: Iterable[str]) -> Set[str]:
    return {v.lower() for v in values if v}
