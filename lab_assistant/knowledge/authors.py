# lab_assistant/knowledge/authors.py
"""
Best-effort author inference from a filename and the leading content.

Heuristics are tried in order until one matches:

1. parenthesized / bracket-delimited CJK name in the filename
2. longest CJK-only filename token not in the stoplist
3. an explicit "著者:" style label in the first characters of content
4. a CJK name followed by 学籍番号 / 指導 / 所属

The result is a guess and is expected to misfire on atypical filenames.
"""

import logging
import re
from typing import List, Optional

from lab_assistant.knowledge.vocabulary import (
    AUTHOR_BRACKET_PATTERN,
    AUTHOR_CONTENT_SCAN_CHARS,
    AUTHOR_FILENAME_STOPWORDS,
    AUTHOR_LABEL_PATTERN,
    AUTHOR_MARKER_PATTERN,
    AUTHOR_PAREN_PATTERN,
    CJK,
)

logger = logging.getLogger(__name__)


_EXTENSION = re.compile(r"\.[^.]+$")
_FILENAME_SPLIT = re.compile(r"[\s_\-]+")
_FILENAME_NOISE = re.compile(r"[0-9()（）\[\]【】]+")
_CJK_ONLY = re.compile(f"^[{CJK}]+$")
_HONORIFICS = ("さん", "君")


def _from_filename_brackets(base: str) -> Optional[str]:

    for pattern in (AUTHOR_PAREN_PATTERN, AUTHOR_BRACKET_PATTERN):

        match = re.search(pattern, base)

        if match:
            return match.group(1)

    return None


def _from_filename_tokens(
    base: str,
    stopwords: List[str],
) -> Optional[str]:

    candidates = []

    for part in _FILENAME_SPLIT.split(base):

        part = _FILENAME_NOISE.sub("", part)

        if not 2 <= len(part) <= 10:
            continue

        if not _CJK_ONLY.match(part):
            continue

        if any(word in part for word in stopwords):
            continue

        candidates.append(part)

    if not candidates:
        return None

    # stable sort keeps the first of equally long candidates
    return sorted(candidates, key=len, reverse=True)[0]


def _from_content(content: str) -> Optional[str]:

    head = content[:AUTHOR_CONTENT_SCAN_CHARS]

    for pattern in (AUTHOR_LABEL_PATTERN, AUTHOR_MARKER_PATTERN):

        match = re.search(pattern, head)

        if match:
            return _strip_honorific(match.group(1))

    return None


def _strip_honorific(name: str) -> str:

    for suffix in _HONORIFICS:

        if name.endswith(suffix) and len(name) - len(suffix) >= 2:
            return name[:-len(suffix)]

    return name


def infer_author(
    filename: str,
    content: str,
    stopwords: Optional[List[str]] = None,
) -> Optional[str]:
    """
    Guess the author of a document. Never raises.
    """

    stopwords = AUTHOR_FILENAME_STOPWORDS if stopwords is None else stopwords

    try:

        base = _EXTENSION.sub("", filename or "")

        return (
            _from_filename_brackets(base)
            or _from_filename_tokens(base, stopwords)
            or _from_content(content or "")
        )

    except Exception as e:

        logger.warning(
            "Author inference failed",
            extra={"doc_filename": filename, "error": str(e)},
        )

        return None
