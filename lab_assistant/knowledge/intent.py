# lab_assistant/knowledge/intent.py
"""
Closed classifier over query intents.

Precedence (first match wins):

1. FIELD_INQUIRY   "people who researched X" / "studies using X".
                   Keyword search over the full corpus with the field's
                   whole vocabulary. Overrides the author guard and the
                   semantic prefilter.
2. AUTHOR_LOOKUP   a kanji run in the query matches a known author or
                   title. Keyword search restricted to those documents.
3. GENERAL         the requested search mode runs unchanged.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from lab_assistant.knowledge.tokenizer import (
    expand_keywords,
    field_keywords,
    name_runs,
    tokenize_query,
)
from lab_assistant.knowledge.vocabulary import (
    FIELD_INQUIRY_ALIASES,
    FIELD_INQUIRY_PATTERNS,
    GENERIC_STOP_TERMS,
    SUBJECT_SEPARATORS,
)
from lab_assistant.models import Document


class QueryIntent(str, Enum):
    FIELD_INQUIRY = "field_inquiry"
    AUTHOR_LOOKUP = "author_lookup"
    GENERAL = "general"


@dataclass
class QueryPlan:
    intent: QueryIntent
    tokens: List[str]
    keywords: List[str]
    subject: Optional[str] = None
    field_tag: Optional[str] = None
    author_pool: List[Document] = field(default_factory=list)
    name_runs: List[str] = field(default_factory=list)


_COMPILED_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in FIELD_INQUIRY_PATTERNS
]


# ============================================================
# FIELD INQUIRY
# ============================================================

def _clean_subject(raw: str) -> str:

    parts = [p for p in re.split(SUBJECT_SEPARATORS, raw) if p.strip()]

    subject = parts[-1] if parts else raw

    return subject.strip(" 　「」『』\"'?？")


def extract_field_subject(query: str) -> Optional[str]:

    for pattern in _COMPILED_PATTERNS:

        match = pattern.search(query or "")

        if match:

            subject = _clean_subject(match.group("subject"))

            if subject:
                return subject

    return None


def normalize_field(
    subject: str,
    aliases: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Map a subject to a canonical field tag.

    Exact alias first, then the longest alias contained in the subject.
    """

    aliases = FIELD_INQUIRY_ALIASES if aliases is None else aliases

    lowered = subject.lower().strip()

    if lowered in aliases:
        return aliases[lowered]

    contained = [a for a in aliases if a and a in lowered]

    if not contained:
        return None

    return aliases[max(contained, key=len)]


# ============================================================
# AUTHOR GUARD
# ============================================================

def _run_matches(run: str, doc: Document) -> bool:

    author = (doc.author or "").strip()

    if author and len(author) >= 2 and (run in author or author in run):
        return True

    return run in (doc.title or "")


def find_author_pool(
    runs: Sequence[str],
    documents: Sequence[Document],
) -> List[Document]:

    if not runs:
        return []

    return [
        doc for doc in documents
        if any(_run_matches(run, doc) for run in runs)
    ]


# ============================================================
# CLASSIFIER
# ============================================================

def classify_query(
    query: str,
    documents: Sequence[Document],
    stop_terms: Optional[List[str]] = None,
) -> QueryPlan:

    stop_terms = GENERIC_STOP_TERMS if stop_terms is None else stop_terms

    tokens = tokenize_query(query, stop_terms)

    subject = extract_field_subject(query)

    if subject:

        tag = normalize_field(subject)

        subject_tokens = tokenize_query(subject, stop_terms) or [subject.lower()]

        keywords = expand_keywords(tokens + subject_tokens)

        if tag:
            keywords = expand_keywords(keywords + field_keywords(tag))

        return QueryPlan(
            intent=QueryIntent.FIELD_INQUIRY,
            tokens=tokens,
            keywords=keywords,
            subject=subject,
            field_tag=tag,
        )

    runs = name_runs(query, stop_terms=stop_terms)

    pool = find_author_pool(runs, documents)

    if pool:

        return QueryPlan(
            intent=QueryIntent.AUTHOR_LOOKUP,
            tokens=tokens,
            keywords=expand_keywords(tokens + [r for r in runs if r not in tokens]),
            author_pool=pool,
            name_runs=runs,
        )

    return QueryPlan(
        intent=QueryIntent.GENERAL,
        tokens=tokens,
        keywords=expand_keywords(tokens),
    )
