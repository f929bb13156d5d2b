# lab_assistant/knowledge/tokenizer.py
"""
Query tokenization and keyword expansion.

CJK text has no word boundaries, so besides whitespace/punctuation
splitting the tokenizer adds short kanji runs, katakana words and ASCII
words as supplementary tokens. Expansion is a pure function over a
field -> {triggers, synonyms} table.
"""

import re
from typing import Dict, Iterable, List, Optional

from lab_assistant.knowledge.vocabulary import (
    FIELD_TERMS,
    GENERIC_STOP_TERMS,
    HIRAGANA,
    KANJI,
    KATAKANA,
    TECHNICAL_TERMS,
)


_SPLIT = re.compile(
    r"[\s、。，,．.！!？?「」『』（）()\[\]【】{}<>:：;；/／・\"'“”‘’〜~]+"
)
_ASCII_WORD = re.compile(r"[a-z0-9][a-z0-9\-+]*")
_KANJI_RUN = re.compile(f"[{KANJI}]{{2,3}}")
_KATAKANA_RUN = re.compile(f"[{KATAKANA}]{{2,}}")
_HIRAGANA_ONLY = re.compile(f"^[{HIRAGANA}]+$")
_ASCII_TECHNICAL = re.compile(r"^[a-z0-9][a-z0-9\-+ ]*$")
_NAME_SHAPED = re.compile(f"^[{KANJI}]{{2,4}}$")
_ASCII_TRIGGER = re.compile(r"^[a-z0-9\-+ ]+$")


def _dedupe(items: Iterable[str]) -> List[str]:

    seen = set()
    out = []

    for item in items:

        if item and item not in seen:
            seen.add(item)
            out.append(item)

    return out


def strip_stop_terms(
    text: str,
    stop_terms: Optional[List[str]] = None,
) -> str:

    stop_terms = GENERIC_STOP_TERMS if stop_terms is None else stop_terms

    for term in stop_terms:
        text = text.replace(term, " ")

    return text


def tokenize_query(
    query: str,
    stop_terms: Optional[List[str]] = None,
) -> List[str]:
    """
    Lower-cased, de-duplicated query tokens in order of appearance.

    Base tokens come from whitespace/punctuation splitting. Supplementary
    tokens: ASCII words, kanji runs of 2-3 characters (greedy,
    non-overlapping) and katakana runs. Generic terms such as 研究 are
    removed before any token is extracted.
    """

    if not query:
        return []

    stop_terms = GENERIC_STOP_TERMS if stop_terms is None else stop_terms

    lowered = query.lower()
    cleaned = strip_stop_terms(lowered, stop_terms)

    tokens = [t for t in _SPLIT.split(cleaned) if t]

    tokens += _ASCII_WORD.findall(cleaned)
    tokens += _KANJI_RUN.findall(cleaned)
    tokens += _KATAKANA_RUN.findall(cleaned)

    stops = set(stop_terms)

    return _dedupe(
        t for t in tokens
        if len(t) >= 2
        and t not in stops
        and not _HIRAGANA_ONLY.match(t)
    )


def name_runs(
    query: str,
    min_len: int = 2,
    max_len: int = 6,
    stop_terms: Optional[List[str]] = None,
) -> List[str]:
    """
    Kanji runs that could be a person's name (used by the author guard).
    """

    cleaned = strip_stop_terms(query or "", stop_terms)

    pattern = re.compile(f"[{KANJI}]{{{min_len},{max_len}}}")

    return _dedupe(pattern.findall(cleaned))


def is_name_shaped(token: str) -> bool:
    return bool(_NAME_SHAPED.match(token))


def is_technical_term(
    token: str,
    technical_terms: frozenset = TECHNICAL_TERMS,
) -> bool:
    """
    All-lowercase ASCII tokens and curated terms count as technical.
    """

    if not token:
        return False

    if token in technical_terms:
        return True

    return len(token) >= 2 and bool(_ASCII_TECHNICAL.match(token))


def _trigger_hits(token: str, trigger: str) -> bool:

    # ASCII triggers must start the token ("ui" must not fire on "build")
    if _ASCII_TRIGGER.match(trigger):
        return token.startswith(trigger)

    return trigger in token


def matching_fields(
    token: str,
    table: Optional[Dict[str, Dict[str, List[str]]]] = None,
) -> List[str]:

    table = FIELD_TERMS if table is None else table

    return [
        tag for tag, entry in table.items()
        if any(_trigger_hits(token, trigger) for trigger in entry["triggers"])
    ]


def expand_keywords(
    tokens: Iterable[str],
    table: Optional[Dict[str, Dict[str, List[str]]]] = None,
) -> List[str]:
    """
    Tokens followed by the triggers and synonyms of every field they hit.
    """

    table = FIELD_TERMS if table is None else table

    tokens = list(tokens)
    expanded = list(tokens)

    for token in tokens:

        for tag in matching_fields(token, table):

            entry = table[tag]

            expanded += [t.lower() for t in entry["triggers"]]
            expanded += [t.lower() for t in entry["synonyms"]]

    return _dedupe(expanded)


def field_keywords(
    tag: str,
    table: Optional[Dict[str, Dict[str, List[str]]]] = None,
) -> List[str]:

    table = FIELD_TERMS if table is None else table

    entry = table.get(tag)

    if not entry:
        return []

    return _dedupe(t.lower() for t in entry["triggers"] + entry["synonyms"])
