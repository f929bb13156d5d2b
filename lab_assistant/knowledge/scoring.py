# lab_assistant/knowledge/scoring.py
"""
Multi-factor keyword scoring.

Per expanded keyword a document collects points for author, title and
content matches; a cohesion bonus is added when several keywords hit the
same document. Ranking sorts by author tier first so a document whose
author is named in the query never ranks below a content-only match.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from lab_assistant.config import (
    CONTENT_FREQUENT_MIN,
    CONTENT_MULTI_MIN,
    FIELD_COHESION_MIN,
    SCORING_WEIGHTS,
    TOP_K,
)
from lab_assistant.knowledge.tokenizer import is_technical_term
from lab_assistant.models import Document


AUTHOR_TIER_NONE = 0
AUTHOR_TIER_PARTIAL = 1
AUTHOR_TIER_EXACT = 2


@dataclass
class ScoredDocument:
    document: Document
    score: float
    method: str = "keyword"
    author_tier: int = AUTHOR_TIER_NONE
    matched_keywords: List[str] = field(default_factory=list)


def _content_points(count: int, weights: Dict[str, float]) -> float:

    if count >= CONTENT_FREQUENT_MIN:
        return weights["content_frequent"]

    if count >= CONTENT_MULTI_MIN:
        return weights["content_multi"]

    if count == 1:
        return weights["content_single"]

    return 0


def score_document(
    doc: Document,
    keywords: Sequence[str],
    query: str = "",
    weights: Optional[Dict[str, float]] = None,
) -> ScoredDocument:

    weights = SCORING_WEIGHTS if weights is None else weights

    author = (doc.author or "").lower().strip()
    title = (doc.title or "").lower()
    content = (doc.content or "").lower()
    query_lower = (query or "").lower()

    score = 0.0
    tier = AUTHOR_TIER_NONE
    matched = []

    if author and len(author) >= 2 and author in query_lower:
        score += weights["author_exact"]
        tier = AUTHOR_TIER_EXACT

    for keyword in keywords:

        if not keyword:
            continue

        hit = False
        technical = is_technical_term(keyword)

        if author:

            if author == keyword:

                if tier < AUTHOR_TIER_EXACT:
                    score += weights["author_exact"]
                    tier = AUTHOR_TIER_EXACT

                hit = True

            elif keyword in author or (len(author) >= 2 and author in keyword):

                if tier == AUTHOR_TIER_NONE:
                    tier = AUTHOR_TIER_PARTIAL

                if tier == AUTHOR_TIER_PARTIAL:
                    score += weights["author_partial"]

                hit = True

        if keyword in title:

            score += weights["title"]

            if technical:
                score += weights["title_technical"]

            hit = True

        count = content.count(keyword)

        if count:

            score += _content_points(count, weights)

            if technical:
                score += weights["content_technical"]

            hit = True

        if hit:
            matched.append(keyword)

    if len(matched) >= FIELD_COHESION_MIN:
        score += weights["field_cohesion"]

    return ScoredDocument(
        document=doc,
        score=score,
        author_tier=tier,
        matched_keywords=matched,
    )


def rank_by_keywords(
    documents: Sequence[Document],
    keywords: Sequence[str],
    query: str = "",
    top_k: int = TOP_K,
    weights: Optional[Dict[str, float]] = None,
) -> List[ScoredDocument]:
    """
    Score every document, drop zero scores, sort and keep the top_k.
    """

    scored = [
        score_document(doc, keywords, query=query, weights=weights)
        for doc in documents
    ]

    scored = [s for s in scored if s.score > 0]

    scored.sort(key=lambda s: (s.author_tier, s.score), reverse=True)

    return scored[:top_k]
