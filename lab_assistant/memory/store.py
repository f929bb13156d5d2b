# lab_assistant/memory/store.py

"""
Vector store: per-document chunk embeddings.

A document's chunks are always recomputed and written wholesale; there is
no incremental update. Two backends share the VectorStore base:

• KVVectorStore      flat chunk list per document in the KV service
• QdrantVectorStore  Qdrant collection (memory/qdrant_client.py)

KV layout:

    lab:vec:<doc_id>  -> [{"idx", "text", "embedding"}, ...]
    lab:vec:index     -> [doc_id, ...]
"""

import logging
from typing import List, Optional, Sequence

from lab_assistant.config import (
    GRADUAL_VECTORS_MAX_CHARS,
    GRADUAL_VECTORS_PER_RUN,
)
from lab_assistant.errors import BackendError, EmbeddingError
from lab_assistant.memory.chunker import chunk_text
from lab_assistant.memory.kv_client import KVClient
from lab_assistant.models import Document, VectorChunk

logger = logging.getLogger(__name__)


VECTOR_KEY_PREFIX = "lab:vec:"
VECTOR_INDEX_KEY = "lab:vec:index"


class VectorStore:

    backend = "base"

    # ============================================================
    # BACKEND HOOKS
    # ============================================================

    async def _write(self, doc_id: str, chunks: List[VectorChunk]) -> None:
        raise NotImplementedError

    async def list_indexed_ids(self) -> List[str]:
        raise NotImplementedError

    async def get_chunks(self, doc_id: str) -> List[VectorChunk]:
        raise NotImplementedError

    async def reset(self) -> None:
        raise NotImplementedError

    # ============================================================
    # VECTORIZATION
    # ============================================================

    async def store_chunks(
        self,
        doc_id: str,
        text: str,
        embedder,
        max_chars: Optional[int] = None,
    ) -> int:
        """
        Chunk, embed and replace the stored vectors of one document.

        Guarantees:
        • Idempotent: storing the same document twice leaves one entry
          in the index and the second chunk list
        • Raises EmbeddingError before anything is written
        """

        if max_chars is not None:
            text = (text or "")[:max_chars]

        pieces = chunk_text(text or "")

        if not pieces:

            logger.warning(
                "Vectorization skipped: empty text",
                extra={"doc_id": doc_id},
            )

            return 0

        embeddings = await embedder.embed_many(pieces)

        chunks = [
            VectorChunk(idx=i, text=piece, embedding=vector)
            for i, (piece, vector) in enumerate(zip(pieces, embeddings))
        ]

        await self._write(doc_id, chunks)

        logger.info(
            "Document vectorized",
            extra={
                "doc_id": doc_id,
                "chunks": len(chunks),
                "backend": self.backend,
            },
        )

        return len(chunks)

    async def ensure_vectors_gradual(
        self,
        documents: Sequence[Document],
        embedder,
        per_run: int = GRADUAL_VECTORS_PER_RUN,
        max_chars: int = GRADUAL_VECTORS_MAX_CHARS,
    ) -> List[str]:
        """
        Vectorize up to per_run documents that have content but no vectors.

        Never raises: per-document failures are logged and skipped.
        Returns the ids vectorized in this run.
        """

        try:
            indexed = set(await self.list_indexed_ids())
        except BackendError as e:

            logger.warning(
                "Gradual vectorization skipped: index unreadable",
                extra={"error": str(e)},
            )

            return []

        pending = [
            doc for doc in documents
            if doc.has_content and doc.id not in indexed
        ][:per_run]

        done = []

        for doc in pending:

            try:

                await self.store_chunks(doc.id, doc.content, embedder, max_chars=max_chars)

                done.append(doc.id)

            except (EmbeddingError, BackendError) as e:

                logger.warning(
                    "Gradual vectorization failed",
                    extra={"doc_id": doc.id, "error": str(e)},
                )

        return done


# ============================================================
# KV BACKEND
# ============================================================

class KVVectorStore(VectorStore):

    backend = "kv"

    def __init__(self, kv: KVClient):
        self._kv = kv

    @staticmethod
    def _key(doc_id: str) -> str:
        return f"{VECTOR_KEY_PREFIX}{doc_id}"

    async def _write(self, doc_id: str, chunks: List[VectorChunk]) -> None:

        await self._kv.set(
            self._key(doc_id),
            [c.model_dump() for c in chunks],
        )

        index = await self.list_indexed_ids()

        if doc_id not in index:

            index.append(doc_id)

            await self._kv.set(VECTOR_INDEX_KEY, index)

    async def list_indexed_ids(self) -> List[str]:

        index = await self._kv.get(VECTOR_INDEX_KEY)

        return list(index) if isinstance(index, list) else []

    async def get_chunks(self, doc_id: str) -> List[VectorChunk]:

        raw = await self._kv.get(self._key(doc_id))

        if not isinstance(raw, list):
            return []

        return [VectorChunk.model_validate(item) for item in raw]

    async def reset(self) -> None:

        ids = await self.list_indexed_ids()

        await self._kv.delete(*[self._key(i) for i in ids], VECTOR_INDEX_KEY)

        logger.info(
            "Vector store reset",
            extra={"documents": len(ids), "backend": self.backend},
        )
