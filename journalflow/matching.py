"""
Reviewer matching.

``rank()`` scores every candidate expertise profile against a proposal and
returns them best first. It performs no I/O: proposals and candidates may
be ORM rows or plain dicts, and missing fields simply score nothing.

Scoring:
    +40      candidate research areas contain the proposal's research area
    +15 each proposal keyword overlapping a candidate keyword, capped at +30
    +10      h-index of at least 10
    +10      at least 5 years of experience
    -20      candidate at review capacity (never below 0)
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

AREA_POINTS = 40
KEYWORD_POINTS = 15
KEYWORD_CAP = 30
H_INDEX_POINTS = 10
H_INDEX_THRESHOLD = 10
EXPERIENCE_POINTS = 10
EXPERIENCE_THRESHOLD = 5
CAPACITY_PENALTY = 20
DEFAULT_MAX_CONCURRENT_REVIEWS = 3


@dataclass
class RankedCandidate:
    candidate: Any
    score: int
    reasons: list[str] = field(default_factory=list)
    has_capacity: bool = True


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def matched_keywords(proposal_keywords: Iterable[str], candidate_keywords: Iterable[str]) -> list[str]:
    """Proposal keywords that contain, or are contained in, some candidate keyword.

    Entries that are not strings are ignored on both sides.
    """
    lowered = [keyword.lower() for keyword in candidate_keywords if isinstance(keyword, str)]
    matches = []
    for keyword in proposal_keywords:
        if not isinstance(keyword, str):
            continue
        needle = keyword.lower()
        if any(needle in other or other in needle for other in lowered):
            matches.append(keyword)
    return matches


def has_capacity(candidate: Any) -> bool:
    current = _field(candidate, "current_reviews_count") or 0
    maximum = _field(candidate, "max_concurrent_reviews") or DEFAULT_MAX_CONCURRENT_REVIEWS
    return current < maximum


def score_candidate(proposal: Any, candidate: Any) -> RankedCandidate:
    score = 0
    reasons = []

    research_area = _field(proposal, "research_area")
    if research_area and research_area in (_field(candidate, "research_areas") or []):
        score += AREA_POINTS
        reasons.append(f"Research area: {research_area}")

    matches = matched_keywords(
        _field(proposal, "keywords") or [],
        _field(candidate, "keywords") or [],
    )
    if matches:
        score += min(len(matches) * KEYWORD_POINTS, KEYWORD_CAP)
        reasons.append(f"Keywords: {', '.join(matches)}")

    h_index = _field(candidate, "h_index")
    if h_index is not None and h_index >= H_INDEX_THRESHOLD:
        score += H_INDEX_POINTS
        reasons.append(f"h-index: {h_index}")

    years = _field(candidate, "years_experience")
    if years is not None and years >= EXPERIENCE_THRESHOLD:
        score += EXPERIENCE_POINTS
        reasons.append(f"{years} years experience")

    capacity = has_capacity(candidate)
    if not capacity:
        score = max(0, score - CAPACITY_PENALTY)
        reasons.append("At capacity")

    return RankedCandidate(candidate=candidate, score=score, reasons=reasons, has_capacity=capacity)


def rank(proposal: Any, candidate_pool: Iterable[Any]) -> list[RankedCandidate]:
    scored = [score_candidate(proposal, candidate) for candidate in candidate_pool]
    # sorted() is stable, so equal scores keep pool order
    return sorted(scored, key=lambda ranked: ranked.score, reverse=True)
