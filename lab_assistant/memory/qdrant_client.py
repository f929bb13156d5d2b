# lab_assistant/memory/qdrant_client.py

import logging
import uuid
from typing import List

from qdrant_client import AsyncQdrantClient
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from lab_assistant.config import (
    EMBEDDING_DIMENSION,
    QDRANT_API_KEY,
    QDRANT_COLLECTION,
    QDRANT_URL,
)
from lab_assistant.errors import VectorStoreError
from lab_assistant.memory.store import VectorStore
from lab_assistant.models import VectorChunk

logger = logging.getLogger(__name__)


_SCROLL_LIMIT = 256


def _doc_filter(doc_id: str) -> Filter:

    return Filter(
        must=[
            FieldCondition(
                key="doc_id",
                match=MatchValue(value=doc_id),
            )
        ]
    )


class QdrantVectorStore(VectorStore):
    """
    Qdrant storage backend.

    One point per chunk, payload {doc_id, idx, text}. Point ids are
    derived from (doc_id, idx) so rewriting a document replaces its
    points instead of duplicating them.
    """

    backend = "qdrant"

    def __init__(
        self,
        client: AsyncQdrantClient = None,
        collection: str = QDRANT_COLLECTION,
        dim: int = EMBEDDING_DIMENSION,
    ):

        self._client = client or AsyncQdrantClient(
            url=QDRANT_URL,
            api_key=QDRANT_API_KEY,
            timeout=60,
        )

        self._collection = collection
        self._dim = dim
        self._ready = False

        logger.info(
            "Qdrant vector store initialized",
            extra={"collection": collection, "dimension": dim},
        )

    # ============================================================
    # COLLECTION SETUP
    # ============================================================

    async def _ensure_collection(self) -> None:
        """
        Creates the collection and the doc_id payload index if missing.
        """

        if self._ready:
            return

        try:

            collections = (await self._client.get_collections()).collections

            if not any(c.name == self._collection for c in collections):

                await self._client.create_collection(
                    collection_name=self._collection,
                    vectors_config=VectorParams(
                        size=self._dim,
                        distance=Distance.COSINE,
                    ),
                )

                await self._client.create_payload_index(
                    collection_name=self._collection,
                    field_name="doc_id",
                    field_schema=PayloadSchemaType.KEYWORD,
                )

                logger.info(
                    "Qdrant collection created",
                    extra={"collection": self._collection},
                )

        except Exception as e:
            raise VectorStoreError(f"Qdrant setup failed: {e}") from e

        self._ready = True

    def _point_id(self, doc_id: str, idx: int) -> str:
        return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{doc_id}:{idx}"))

    async def _scroll(self, scroll_filter=None, with_vectors=False):

        offset = None

        while True:

            points, offset = await self._client.scroll(
                collection_name=self._collection,
                scroll_filter=scroll_filter,
                limit=_SCROLL_LIMIT,
                offset=offset,
                with_payload=True,
                with_vectors=with_vectors,
            )

            for point in points:
                yield point

            if offset is None:
                break

    # ============================================================
    # BACKEND HOOKS
    # ============================================================

    async def _write(self, doc_id: str, chunks: List[VectorChunk]) -> None:

        await self._ensure_collection()

        try:

            await self._client.delete(
                collection_name=self._collection,
                points_selector=FilterSelector(filter=_doc_filter(doc_id)),
            )

            await self._client.upsert(
                collection_name=self._collection,
                points=[
                    PointStruct(
                        id=self._point_id(doc_id, c.idx),
                        vector=c.embedding,
                        payload={"doc_id": doc_id, "idx": c.idx, "text": c.text},
                    )
                    for c in chunks
                ],
            )

        except Exception as e:

            logger.error(
                "Qdrant write failed",
                extra={"doc_id": doc_id, "error": str(e)},
            )

            raise VectorStoreError(f"Qdrant write failed: {e}") from e

    async def list_indexed_ids(self) -> List[str]:

        await self._ensure_collection()

        ids = []

        try:

            async for point in self._scroll():

                doc_id = (point.payload or {}).get("doc_id")

                if doc_id and doc_id not in ids:
                    ids.append(doc_id)

        except Exception as e:
            raise VectorStoreError(f"Qdrant scroll failed: {e}") from e

        return ids

    async def get_chunks(self, doc_id: str) -> List[VectorChunk]:

        await self._ensure_collection()

        chunks = []

        try:

            async for point in self._scroll(_doc_filter(doc_id), with_vectors=True):

                payload = point.payload or {}

                chunks.append(
                    VectorChunk(
                        idx=payload.get("idx", 0),
                        text=payload.get("text", ""),
                        embedding=list(point.vector or []),
                    )
                )

        except Exception as e:
            raise VectorStoreError(f"Qdrant read failed: {e}") from e

        return sorted(chunks, key=lambda c: c.idx)

    async def reset(self) -> None:

        try:
            await self._client.delete_collection(collection_name=self._collection)
        except Exception as e:
            raise VectorStoreError(f"Qdrant reset failed: {e}") from e

        self._ready = False

        logger.info(
            "Vector store reset",
            extra={"collection": self._collection, "backend": self.backend},
        )
