"""Similarity Matcher: keyword-overlap scoring between incident descriptions.

A candidate's score is the share of target keywords that appear, as a
substring, in any word of the candidate's title and description. The raw
share is boosted by 1.5 and capped at 0.95 so a coarse overlap reads like a
percentage without ever claiming certainty.
"""

from typing import Iterable, Optional

from ..utils.logging import get_logger

logger = get_logger("engine.similarity")

MIN_KEYWORD_LENGTH = 4
SCORE_BOOST = 1.5
SCORE_CAP = 0.95
PREVIEW_LENGTH = 150
DEFAULT_LIMIT = 5
DEFAULT_THRESHOLD = 0.15


def tokenize(text: str, min_length: int = 1) -> list[str]:
    """Lower-case whitespace split, dropping tokens shorter than ``min_length``."""
    return [t for t in (text or "").lower().split() if len(t) >= min_length]


def score(keywords: list[str], words: list[str]) -> float:
    """Boosted, capped share of ``keywords`` found in ``words``.

    Computed with a single division, so 1 of 10 keywords scores exactly 0.15.
    """
    if not keywords:
        return 0.0
    match_count = sum(1 for k in keywords if any(k in w for w in words))
    return min(match_count * SCORE_BOOST / max(len(keywords), 1), SCORE_CAP)


def preview(description: str) -> str:
    return (description or "")[:PREVIEW_LENGTH] + "..."


class SimilarityMatcher:
    """Ranks a corpus of incidents against one target description."""

    def __init__(self, limit: int = DEFAULT_LIMIT, threshold: float = DEFAULT_THRESHOLD):
        self.limit = limit
        self.threshold = threshold

    def find_similar(
        self,
        target_id: Optional[str],
        target_description: str,
        corpus: Iterable[dict],
        limit: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> list[dict]:
        """Return up to ``limit`` incidents scoring strictly above ``threshold``.

        Results are ordered by score descending, then by incident id so that
        equal scores come back in a stable order.
        """
        limit = self.limit if limit is None else limit
        threshold = self.threshold if threshold is None else threshold

        keywords = tokenize(target_description, MIN_KEYWORD_LENGTH)
        if not keywords:
            return []

        candidates = []
        for incident in corpus:
            if incident["id"] == target_id:
                continue
            words = tokenize(f"{incident.get('title', '')} {incident.get('description', '')}")
            similarity = score(keywords, words)
            if similarity > threshold:
                candidates.append({
                    "id": incident["id"],
                    "title": incident["title"],
                    "description": preview(incident["description"]),
                    "status": incident["status"],
                    "similarity": similarity,
                    "resolved_at": incident.get("resolved_at"),
                })

        candidates.sort(key=lambda c: (-c["similarity"], c["id"]))
        logger.debug(
            "similarity_ranked",
            target_id=target_id,
            keywords=len(keywords),
            matched=len(candidates),
        )
        return candidates[:limit]
