"""
AntiSpam - Text Similarity
==========================

Near-duplicate scoring with character shingles and the Jaccard index.

Pure functions: no I/O, no state. Kept standalone so it can be tested
and benchmarked on its own.
"""

from typing import FrozenSet

from .constants import SHINGLE_SIZE, ZERO_WIDTH_CHARS


def normalize(content: str) -> str:
    """
    Normalize text for comparison.

    Lowercases, drops zero-width characters, collapses whitespace runs to
    single spaces and trims.
    """
    if not content:
        return ""
    lowered = "".join(c for c in content.lower() if c not in ZERO_WIDTH_CHARS)
    return " ".join(lowered.split())


def shingles(text: str, size: int = SHINGLE_SIZE) -> FrozenSet[str]:
    """
    Set of contiguous substrings of length ``size``.

    Text shorter than ``size`` yields a singleton of the whole text;
    empty text yields the empty set.
    """
    if not text:
        return frozenset()
    if len(text) < size:
        return frozenset((text,))
    return frozenset(text[i:i + size] for i in range(len(text) - size + 1))


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    """Jaccard index |A ∩ B| / |A ∪ B|; two empty sets count as identical."""
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    intersection = len(a & b)
    return intersection / (len(a) + len(b) - intersection)


def calculate(text1: str, text2: str, size: int = SHINGLE_SIZE) -> float:
    """
    Similarity of two strings in [0, 1].

    Symmetric and deterministic. Both empty after normalization gives 1.0,
    exactly one empty gives 0.0.

    Example:
        >>> calculate("buy cheap gold now", "BUY  cheap gold now")
        1.0
    """
    return jaccard(shingles(normalize(text1), size), shingles(normalize(text2), size))


__all__ = [
    "normalize",
    "shingles",
    "jaccard",
    "calculate",
]
