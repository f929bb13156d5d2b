# lab_assistant/memory/chunker.py

import logging
from typing import List

from lab_assistant.config import VECTOR_CHUNK_SIZE

logger = logging.getLogger(__name__)


def chunk_text(
    text: str,
    max_len: int = VECTOR_CHUNK_SIZE,
) -> List[str]:
    """
    Fixed-width character windows.

    Architecture contract preserved:
    loader → chunker → embedder → vector_store

    Guarantees:
    • deterministic chunk generation
    • "".join(chunks) == text (no overlap, no trimming)
    • no empty chunks
    • every chunk has length <= max_len
    """

    # ============================================================
    # SAFETY CHECKS
    # ============================================================

    if not text:
        return []

    if max_len <= 0:
        raise ValueError(f"Invalid chunk size: {max_len}")

    # ============================================================
    # CHUNK GENERATION
    # ============================================================

    chunks = [
        text[start:start + max_len]
        for start in range(0, len(text), max_len)
    ]

    logger.debug(
        "Chunking completed",
        extra={
            "total_chars": len(text),
            "chunk_size": max_len,
            "chunks_created": len(chunks),
        },
    )

    return chunks
