"""
Repetition detection by word overlap.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

REPETITION_THRESHOLD = 0.6


@dataclass
class RepetitionCheck:
    is_repetitive: bool
    most_similar: str = ""


def overlap_ratio(a: str, b: str) -> float:
    """
    Word-multiset overlap between two texts.

    Sum of min(count_a, count_b) over shared lower-cased words, divided by
    the longer text's word count. Symmetric; 0.0 if either side has no words.
    """
    words_a = a.lower().split()
    words_b = b.lower().split()
    if not words_a or not words_b:
        return 0.0

    common = sum((Counter(words_a) & Counter(words_b)).values())
    return common / max(len(words_a), len(words_b))


def is_repetitive(
    candidate: str,
    recent_texts: Iterable[Optional[str]],
    threshold: float = REPETITION_THRESHOLD,
) -> RepetitionCheck:
    """
    Check candidate against recent texts.

    Returns the first recent text (in input order) whose overlap ratio
    exceeds the threshold.
    """
    for text in recent_texts:
        if not text:
            continue
        if overlap_ratio(candidate, text) > threshold:
            return RepetitionCheck(is_repetitive=True, most_similar=text)
    return RepetitionCheck(is_repetitive=False)
