# lab_assistant/memory/repository.py

"""
DocumentRepository: one interface over three document backends.

Priority order (highest first):

1. memory  in-process dict, optional local thesis directory
2. kv      kb:doc:<id> JSON + kb:docs sorted set
3. blob    single kb/metadata.json object

Reads merge all backends and dedupe by id, preferring the variant with
content, then the higher-priority backend. Writes go to every backend;
failures outside the memory backend are logged and swallowed. Every
write bumps the corpus version so caches elsewhere can notice.
"""

import logging
import os
import uuid
from typing import Dict, List, Optional, Sequence

from lab_assistant.config import BLOB_METADATA_PATH, DEFAULT_THESIS_PATH
from lab_assistant.errors import (
    BackendError,
    DocumentNotFoundError,
    KVBackendError,
    MemoryBackendError,
)
from lab_assistant.knowledge.authors import infer_author
from lab_assistant.memory.blob_store import LocalBlobStore
from lab_assistant.memory.kv_client import KVClient
from lab_assistant.models import Document, DocumentStatus, DocumentType, utcnow

logger = logging.getLogger(__name__)


DOC_KEY_PREFIX = "kb:doc:"
DOC_INDEX_KEY = "kb:docs"
LEGACY_DOCS_KEY = "lab:docs"
VERSION_KEY = "kb:version"

PLACEHOLDER_PREFIX = "過去の修士論文: "


def new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:12]}"


def has_real_content(doc: Document) -> bool:
    """
    Content other than a thesis-directory placeholder.
    """

    return doc.has_content and not doc.content.startswith(PLACEHOLDER_PREFIX)


def _parse_documents(raw, source: str) -> List[Document]:

    docs = []

    for item in raw or []:

        if not isinstance(item, dict):
            continue

        try:
            docs.append(Document.model_validate(item))
        except ValueError as e:

            logger.warning(
                "Skipping malformed document record",
                extra={"backend": source, "error": str(e)},
            )

    return docs


# ============================================================
# BACKENDS
# ============================================================

class DocumentBackend:

    name = "base"

    async def list(self) -> List[Document]:
        raise NotImplementedError

    async def save(self, doc: Document) -> None:
        raise NotImplementedError

    async def reset(self) -> None:
        raise NotImplementedError


class MemoryDocumentBackend(DocumentBackend):
    """
    In-process store. When thesis_path points at a directory, every PDF
    in it becomes a ready thesis placeholder.
    """

    name = "memory"

    def __init__(self, thesis_path: Optional[str] = DEFAULT_THESIS_PATH):

        self._docs: Dict[str, Document] = {}
        self._thesis_path = thesis_path

        if thesis_path:
            self._load_thesis_placeholders(thesis_path)

    def _load_thesis_placeholders(self, path: str) -> None:

        try:
            names = sorted(os.listdir(path))
        except OSError as e:

            logger.warning(
                "Thesis directory unreadable",
                extra={"path": path, "error": str(e)},
            )

            return

        for file_name in names:

            if not file_name.lower().endswith(".pdf"):
                continue

            doc_id = f"doc_{uuid.uuid5(uuid.NAMESPACE_URL, file_name).hex[:12]}"

            self._docs[doc_id] = Document(
                id=doc_id,
                name=file_name,
                type=DocumentType.THESIS,
                content=f"{PLACEHOLDER_PREFIX}{file_name}",
                author=infer_author(file_name, ""),
                status=DocumentStatus.READY,
            )

        logger.info(
            "Thesis placeholders loaded",
            extra={"path": path, "documents": len(self._docs)},
        )

    async def list(self) -> List[Document]:
        return list(self._docs.values())

    async def save(self, doc: Document) -> None:

        if not doc.id:
            raise MemoryBackendError("Document id is required")

        self._docs[doc.id] = doc

    async def reset(self) -> None:
        self._docs.clear()


class KVDocumentBackend(DocumentBackend):

    name = "kv"

    def __init__(self, kv: KVClient):
        self._kv = kv

    @staticmethod
    def _key(doc_id: str) -> str:
        return f"{DOC_KEY_PREFIX}{doc_id}"

    async def list(self) -> List[Document]:

        ids = await self._kv.zrange(DOC_INDEX_KEY, 0, -1)

        if not ids:
            return []

        raw = await self._kv.mget([self._key(i) for i in ids])

        return _parse_documents(raw, self.name)

    async def save(self, doc: Document) -> None:

        await self._kv.set(self._key(doc.id), doc.to_storage())

        await self._kv.zadd(
            DOC_INDEX_KEY,
            int(doc.uploaded_at.timestamp() * 1000),
            doc.id,
        )

    async def legacy_documents(self) -> List[Document]:
        """
        Records from the older single-list layout (lab:docs).
        """

        return _parse_documents(await self._kv.get(LEGACY_DOCS_KEY), self.name)

    async def reset(self) -> None:

        ids = await self._kv.zrange(DOC_INDEX_KEY, 0, -1)

        await self._kv.delete(
            *[self._key(i) for i in ids],
            DOC_INDEX_KEY,
            LEGACY_DOCS_KEY,
        )


class BlobDocumentBackend(DocumentBackend):

    name = "blob"

    def __init__(self, store: LocalBlobStore, path: str = BLOB_METADATA_PATH):

        self._store = store
        self._path = path

    async def _records(self) -> List[dict]:

        data = await self._store.read_json(self._path)

        if not isinstance(data, dict):
            return []

        return list(data.get("documents") or [])

    async def list(self) -> List[Document]:
        return _parse_documents(await self._records(), self.name)

    async def save(self, doc: Document) -> None:

        records = [
            r for r in await self._records()
            if r.get("id") != doc.id and r.get("name") != doc.name
        ]

        records.append(doc.to_storage())

        await self._store.write_json(self._path, {"documents": records})

    async def reset(self) -> None:
        await self._store.delete(self._path)


# ============================================================
# REPOSITORY
# ============================================================

class DocumentRepository:

    def __init__(
        self,
        backends: Sequence[DocumentBackend],
        kv: Optional[KVClient] = None,
    ):

        if not backends:
            raise ValueError("At least one document backend is required")

        self._backends = list(backends)
        self._kv = kv if kv is not None and kv.enabled else None
        self._local_version = 0

        logger.info(
            "Document repository initialized",
            extra={"backends": [b.name for b in self._backends]},
        )

    @property
    def backend_names(self) -> List[str]:
        return [b.name for b in self._backends]

    # ============================================================
    # VERSION
    # ============================================================

    async def read_version(self) -> int:

        if self._kv is None:
            return self._local_version

        value = await self._kv.get(VERSION_KEY)

        return int(value or 0)

    async def _bump_version(self) -> None:

        self._local_version += 1

        if self._kv is None:
            return

        try:
            await self._kv.incr(VERSION_KEY)
        except KVBackendError as e:

            logger.warning(
                "Version bump failed",
                extra={"error": str(e)},
            )

    # ============================================================
    # READS
    # ============================================================

    async def list(self) -> List[Document]:
        """
        Merged view of all backends, newest first.

        Guarantees:
        • ids are unique
        • a variant with content beats an empty or placeholder one
        • otherwise the higher-priority backend wins
        """

        merged: Dict[str, Document] = {}

        for backend in self._backends:

            try:
                docs = await backend.list()
            except BackendError as e:

                logger.warning(
                    "Backend read failed, skipping",
                    extra={"backend": backend.name, "error": str(e)},
                )

                continue

            for doc in docs:

                existing = merged.get(doc.id)

                if existing is None or (
                    not has_real_content(existing) and has_real_content(doc)
                ):
                    merged[doc.id] = doc

        return sorted(merged.values(), key=lambda d: d.uploaded_at, reverse=True)

    async def get(self, doc_id: str) -> Document:

        for doc in await self.list():

            if doc.id == doc_id:
                return doc

        raise DocumentNotFoundError(doc_id)

    # ============================================================
    # WRITES
    # ============================================================

    async def _save(self, doc: Document) -> None:

        for backend in self._backends:

            try:
                await backend.save(doc)
            except BackendError as e:

                if isinstance(e, MemoryBackendError):
                    raise

                logger.warning(
                    "Backend write failed",
                    extra={"backend": backend.name, "doc_id": doc.id, "error": str(e)},
                )

        await self._bump_version()

    async def upsert_by_name(
        self,
        name: str,
        doc_type: DocumentType = DocumentType.DOCUMENT,
    ) -> Document:
        """
        Existing document with this name, or a new processing record.

        A document that ended in error is never reused; the retry gets a
        fresh id so it can move through processing again.
        """

        for doc in await self.list():

            if doc.name == name and doc.status != DocumentStatus.ERROR:
                return doc

        doc = Document(
            id=new_document_id(),
            name=name,
            type=doc_type,
            status=DocumentStatus.PROCESSING,
            uploaded_at=utcnow(),
        )

        await self._save(doc)

        logger.info(
            "Document created",
            extra={"doc_id": doc.id, "doc_name": name, "doc_type": doc_type.value},
        )

        return doc

    async def update(self, doc_id: str, **patch) -> Document:

        doc = (await self.get(doc_id)).with_patch(patch)

        await self._save(doc)

        return doc

    async def reset(self) -> int:

        count = len(await self.list())

        for backend in self._backends:

            try:
                await backend.reset()
            except BackendError as e:

                logger.warning(
                    "Backend reset failed",
                    extra={"backend": backend.name, "error": str(e)},
                )

        await self._bump_version()

        logger.info("Document repository reset", extra={"documents": count})

        return count

    async def backfill(self) -> int:
        """
        Copy documents that the KV index is missing (legacy list entries
        and documents only present in other backends) into the KV layout.
        """

        kv_backend = next(
            (b for b in self._backends if isinstance(b, KVDocumentBackend)),
            None,
        )

        if kv_backend is None:
            return 0

        try:

            present = {d.id for d in await kv_backend.list()}

            candidates = await kv_backend.legacy_documents()

        except KVBackendError as e:

            logger.warning("Backfill skipped", extra={"error": str(e)})

            return 0

        candidates += await self.list()

        migrated = 0

        for doc in candidates:

            if doc.id in present:
                continue

            try:
                await kv_backend.save(doc)
            except KVBackendError as e:

                logger.warning(
                    "Backfill write failed",
                    extra={"doc_id": doc.id, "error": str(e)},
                )

                continue

            present.add(doc.id)
            migrated += 1

        if migrated:
            await self._bump_version()

        logger.info("Backfill completed", extra={"migrated": migrated})

        return migrated


def build_repository(
    kv: KVClient,
    blob_store: LocalBlobStore,
    thesis_path: Optional[str] = DEFAULT_THESIS_PATH,
) -> DocumentRepository:

    backends: List[DocumentBackend] = [MemoryDocumentBackend(thesis_path)]

    if kv.enabled:
        backends.append(KVDocumentBackend(kv))

    backends.append(BlobDocumentBackend(blob_store))

    return DocumentRepository(backends, kv=kv)
