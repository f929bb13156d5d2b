# lab_assistant/memory/loader.py

"""
Text extraction for ingestion and the PDF tool.

Architecture contract preserved:
loader → chunker → embedder → vector_store

Supports:
- PDF bytes (pypdf)
- Plain text / markdown / JSON bytes
- URLs serving PDF, text or HTML (requests + BeautifulSoup)

PDF extraction never raises: unreadable files yield empty text and the
caller records the document as failed.
"""

import asyncio
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote, urlparse

import requests
from bs4 import BeautifulSoup
from pypdf import PdfReader

from lab_assistant.errors import UnsupportedContentError

logger = logging.getLogger(__name__)


URL_FETCH_TIMEOUT = 15


@dataclass
class PdfExtraction:
    text: str
    pages: int = 0
    info: Dict[str, Any] = field(default_factory=dict)


# ============================================================
# PDF LOADER
# ============================================================

def extract_pdf_text(data: bytes) -> PdfExtraction:

    if not data:
        return PdfExtraction(text="")

    try:

        reader = PdfReader(io.BytesIO(data))

        parts = []

        for page in reader.pages:

            text = page.extract_text()

            if text:
                parts.append(text)

        info = {
            str(k).lstrip("/"): str(v)
            for k, v in (reader.metadata or {}).items()
        }

        return PdfExtraction(
            text="\n".join(parts),
            pages=len(reader.pages),
            info=info,
        )

    except Exception as e:

        logger.warning(
            "PDF extraction failed",
            extra={"error": str(e), "size_bytes": len(data)},
        )

        return PdfExtraction(text="")


async def extract_pdf_text_async(data: bytes) -> PdfExtraction:
    return await asyncio.to_thread(extract_pdf_text, data)


# ============================================================
# PLAIN TEXT
# ============================================================

def decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def extract_file_text(filename: str, data: bytes) -> str:
    """
    Text of an uploaded or local file, chosen by extension.
    """

    if filename.lower().endswith(".pdf"):
        return extract_pdf_text(data).text

    return decode_text(data)


# ============================================================
# CLEAN HTML → TEXT
# ============================================================

def extract_clean_text(html: str) -> str:

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup([
        "script",
        "style",
        "nav",
        "footer",
        "header",
        "aside",
        "noscript"
    ]):
        tag.decompose()

    return soup.get_text(separator="\n").strip()


# ============================================================
# URL LOADER
# ============================================================

def filename_from_url(url: str) -> str:

    path = urlparse(url).path.rstrip("/")

    name = unquote(path.rsplit("/", 1)[-1]) if path else ""

    return name or "document.pdf"


def fetch_url(url: str) -> Tuple[bytes, str]:

    resp = requests.get(url, timeout=URL_FETCH_TIMEOUT)

    if resp.status_code != 200:
        raise ValueError(f"HTTP {resp.status_code}")

    return resp.content, resp.headers.get("content-type", "")


def load_url_text(url: str) -> str:
    """
    Raises ValueError (HTTP failure), UnsupportedContentError, or
    requests.RequestException.
    """

    data, content_type = fetch_url(url)

    content_type = content_type.lower()

    if "pdf" in content_type or url.lower().endswith(".pdf"):
        return extract_pdf_text(data).text

    if "html" in content_type:
        return extract_clean_text(decode_text(data))

    if "text/" in content_type or "json" in content_type:
        return decode_text(data)

    raise UnsupportedContentError(f"Unsupported content-type: {content_type}")


async def load_url_text_async(url: str) -> str:
    return await asyncio.to_thread(load_url_text, url)


# ============================================================
# SECTIONS / FORMATTING
# ============================================================

def extract_section(text: str, start: str, end: str) -> Optional[str]:
    """
    From the first line starting with `start` up to the first line
    starting with `end`. Runs to the end of the text when `end` is
    missing or precedes `start`. None when `start` is not found.
    """

    if not text or not start:
        return None

    start_match = re.search(rf"^\s*{re.escape(start)}.*$", text, re.M | re.I)

    if not start_match:
        return None

    end_match = (
        re.search(rf"^\s*{re.escape(end)}.*$", text, re.M | re.I)
        if end else None
    )

    if not end_match or end_match.start() <= start_match.start():
        return text[start_match.start():]

    return text[start_match.start():end_match.start()]


def format_text(text: str) -> str:

    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+$", "", text, flags=re.M)
    text = re.sub(r"([a-zA-Z0-9])\s{2,}([a-zA-Z0-9])", r"\1 \2", text)

    # 4+ leading spaces collapse to a 4-space indent
    lines = [re.sub(r"^\s{4,}", "    ", line) for line in text.split("\n")]

    return "\n".join(lines).strip()
