# lab_assistant/memory/embedder.py

"""
Embedding oracle wrapper.

Architecture contract:
chunker → embedder → vector_store

Guarantees:
• Input truncated to EMBEDDING_MAX_CHARS
• Every failure raises EmbeddingError (no fallback vectors)
• Missing credentials are reported lazily, at first call
• Batched processing for multi-text requests
"""

import logging
import os
from typing import List, Optional

from openai import AsyncOpenAI

from lab_assistant.config import (
    EMBED_BATCH_SIZE,
    EMBEDDING_DIMENSION,
    EMBEDDING_MAX_CHARS,
    EMBEDDING_MODEL,
    OPENAI_API_KEY_ENV,
    OPENAI_KEY_PLACEHOLDER,
)
from lab_assistant.errors import EmbeddingError, MissingCredentialsError

logger = logging.getLogger(__name__)


def api_key_status() -> str:
    """
    "configured", "placeholder" or "missing", for the health endpoint.
    """

    key = os.getenv(OPENAI_API_KEY_ENV)

    if not key:
        return "missing"

    if key == OPENAI_KEY_PLACEHOLDER:
        return "placeholder"

    return "configured"


class Embedder:
    """
    Async embedding generator over the OpenAI embeddings endpoint.
    """

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: str = EMBEDDING_MODEL,
    ):

        self._client = client
        self._model = model
        self._dimension = EMBEDDING_DIMENSION

        logger.info(
            "Embedder initialized",
            extra={"model": model, "dimension": self._dimension},
        )

    def _get_client(self) -> AsyncOpenAI:

        if self._client is not None:
            return self._client

        if api_key_status() != "configured":
            raise MissingCredentialsError(
                "OpenAI API key is not configured. Set OPENAI_API_KEY."
            )

        self._client = AsyncOpenAI()

        return self._client

    # ============================================================
    # PUBLIC API
    # ============================================================

    async def embed(self, text: str) -> List[float]:

        vectors = await self.embed_many([text])

        return vectors[0]

    async def embed_many(
        self,
        texts: List[str],
        batch_size: int = EMBED_BATCH_SIZE,
    ) -> List[List[float]]:
        """
        Guarantees:
        • One vector per input, in input order
        • Raises EmbeddingError on any oracle failure
        """

        if not texts:
            return []

        inputs = [(t or " ")[:EMBEDDING_MAX_CHARS] for t in texts]

        try:
            client = self._get_client()
        except MissingCredentialsError as e:
            raise EmbeddingError(str(e)) from e

        vectors: List[List[float]] = []

        try:

            # ====================================================
            # BATCH PROCESSING LOOP
            # ====================================================

            for start in range(0, len(inputs), batch_size):

                batch = inputs[start:start + batch_size]

                response = await client.embeddings.create(
                    model=self._model,
                    input=batch,
                )

                vectors += [list(item.embedding) for item in response.data]

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={"error": str(e), "inputs": len(inputs)},
            )

            raise EmbeddingError(f"Embedding generation failed: {e}") from e

        if len(vectors) != len(inputs):
            raise EmbeddingError(
                f"Embedding count mismatch: {len(vectors)} != {len(inputs)}"
            )

        logger.debug(
            "Embedding completed",
            extra={"inputs": len(inputs), "dimension": self._dimension},
        )

        return vectors
