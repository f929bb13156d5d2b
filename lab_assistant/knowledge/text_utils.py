# lab_assistant/knowledge/text_utils.py
import re
from typing import Iterable

from lab_assistant.config import (
    CONTEXT_EXCERPT_CHARS,
    MAX_CONTENT_CHARS,
    SNIPPET_CHARS,
)


_WHITESPACE = re.compile(r"\s+")

EXCERPT_WINDOW = 2000
EXCERPT_MARKER = "\n\n[...中略...]\n\n"


def preprocess_text(text: str, limit: int = MAX_CONTENT_CHARS) -> str:
    """
    Collapse whitespace runs, strip, and cap the length.
    """

    if not text:
        return ""

    return _WHITESPACE.sub(" ", text).strip()[:limit]


def build_excerpt(
    text: str,
    limit: int = CONTEXT_EXCERPT_CHARS,
    window: int = EXCERPT_WINDOW,
) -> str:
    """
    Intro + a window from 30% into the text + conclusion, for long text.

    Short text is returned unchanged.
    """

    if not text or len(text) <= limit:
        return text or ""

    intro = text[:window]

    middle_start = int(len(text) * 0.3)
    middle = text[middle_start:middle_start + window]

    conclusion = text[max(0, len(text) - window):]

    return EXCERPT_MARKER.join([intro, middle, conclusion])


def make_snippet(
    text: str,
    keywords: Iterable[str],
    width: int = SNIPPET_CHARS,
) -> str:
    """
    Whitespace-normalized window around the first keyword hit.
    """

    flat = preprocess_text(text, limit=len(text) if text else 0)

    if not flat:
        return ""

    lowered = flat.lower()

    hit = -1

    for keyword in keywords:

        if not keyword:
            continue

        pos = lowered.find(keyword.lower())

        if pos >= 0 and (hit < 0 or pos < hit):
            hit = pos

    start = max(0, hit - width // 4) if hit >= 0 else 0
    end = start + width

    snippet = flat[start:end]

    if start > 0:
        snippet = "…" + snippet

    if end < len(flat):
        snippet = snippet + "…"

    return snippet
