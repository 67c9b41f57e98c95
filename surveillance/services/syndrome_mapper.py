"""
Syndrome mapping: free-text presentation -> ordered syndrome categories.

Keyword matching only, no I/O and no LLM calls. A keyword found in the chief
complaint scores 2, each differential entry containing it scores 1.
"""

from collections.abc import Mapping, Sequence

from surveillance.domain.models import SyndromeCategory
from surveillance.domain.tables import SYNDROME_KEYWORDS

CHIEF_COMPLAINT_WEIGHT = 2
DIFFERENTIAL_WEIGHT = 1


def score_syndromes(
    chief_complaint: str,
    differential: Sequence[str],
    keywords: Mapping[SyndromeCategory, Sequence[str]] = SYNDROME_KEYWORDS,
) -> dict[SyndromeCategory, int]:
    """Raw keyword score per category, in table order, zero scores omitted."""
    cc_lower = chief_complaint.lower()
    diff_lower = [d.lower() for d in differential]

    scores: dict[SyndromeCategory, int] = {}
    for category, category_keywords in keywords.items():
        score = 0
        for keyword in category_keywords:
            if keyword in cc_lower:
                score += CHIEF_COMPLAINT_WEIGHT
            score += DIFFERENTIAL_WEIGHT * sum(1 for diff in diff_lower if keyword in diff)
        if score > 0:
            scores[category] = score
    return scores


def map_to_syndromes(
    chief_complaint: str,
    differential: Sequence[str],
    keywords: Mapping[SyndromeCategory, Sequence[str]] = SYNDROME_KEYWORDS,
) -> list[SyndromeCategory]:
    """
    Map a chief complaint and differential to relevant syndrome categories.

    Returns categories sorted by match strength; ties keep table order.
    """
    scores = score_syndromes(chief_complaint, differential, keywords)
    return sorted(scores, key=lambda category: -scores[category])
