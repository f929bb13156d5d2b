# lab_assistant/workflow/ingestion.py

"""
Ingestion pipeline.

upload/url/local file → extract → preprocess → infer author
→ repository (ready | error) → vector store (best effort)

Extraction failures end in status=error; vectorization failures are
logged and never affect the document status.
"""

import asyncio
import logging
import os
from typing import List, Optional

import requests

from lab_assistant.config import (
    DEFAULT_THESIS_PATH,
    THESIS_FILENAME_MARKERS,
    VECTORIZE_MAX_CHARS,
)
from lab_assistant.errors import (
    BackendError,
    DocumentNotFoundError,
    EmbeddingError,
    InvalidStatusTransition,
    UnsupportedContentError,
)
from lab_assistant.knowledge.authors import infer_author
from lab_assistant.knowledge.text_utils import preprocess_text
from lab_assistant.memory.loader import (
    extract_file_text,
    filename_from_url,
    load_url_text_async,
)
from lab_assistant.models import (
    Document,
    DocumentStatus,
    DocumentType,
    IngestItemResult,
)

logger = logging.getLogger(__name__)


def infer_document_type(filename: str) -> DocumentType:

    if any(marker in filename for marker in THESIS_FILENAME_MARKERS):
        return DocumentType.THESIS

    if filename.lower().endswith(".pdf"):
        return DocumentType.PAPER

    return DocumentType.DOCUMENT


class IngestionService:

    def __init__(
        self,
        repository,
        vector_store=None,
        embedder=None,
        thesis_path: Optional[str] = DEFAULT_THESIS_PATH,
    ):

        self._repo = repository
        self._vectors = vector_store
        self._embedder = embedder
        self._thesis_path = thesis_path

    # ============================================================
    # SHARED STEPS
    # ============================================================

    async def _vectorize(self, doc_id: str, text: str) -> bool:

        if self._vectors is None or self._embedder is None or not text:
            return False

        try:
            await self._vectors.store_chunks(doc_id, text, self._embedder, max_chars=VECTORIZE_MAX_CHARS)
        except (EmbeddingError, BackendError) as e:

            logger.warning(
                "Vectorization failed, document stays searchable by keywords",
                extra={"doc_id": doc_id, "error": str(e)},
            )

            return False

        return True

    async def _complete(self, doc: Document, text: str) -> Document:
        """
        Store extracted text and mark the document ready, or error when
        nothing could be extracted.
        """

        content = preprocess_text(text)

        if not content:

            logger.warning(
                "No text extracted",
                extra={"doc_id": doc.id, "doc_name": doc.name},
            )

            return await self._repo.update(doc.id, status=DocumentStatus.ERROR)

        doc = await self._repo.update(
            doc.id,
            content=content,
            status=DocumentStatus.READY,
            author=infer_author(doc.name, content),
        )

        await self._vectorize(doc.id, content)

        logger.info(
            "Document ingested",
            extra={
                "doc_id": doc.id,
                "doc_name": doc.name,
                "content_chars": len(content),
                "author": doc.author,
            },
        )

        return doc

    async def _mark_error(self, doc_id: str, error: Exception) -> None:

        logger.error(
            "Ingestion failed",
            extra={"doc_id": doc_id, "error": str(error)},
        )

        try:
            await self._repo.update(doc_id, status=DocumentStatus.ERROR)
        except (InvalidStatusTransition, DocumentNotFoundError, BackendError) as e:

            logger.warning(
                "Status not updated",
                extra={"doc_id": doc_id, "error": str(e)},
            )

    # ============================================================
    # UPLOAD (background job)
    # ============================================================

    async def start_upload(self, filename: str) -> Document:
        """
        Creates (or reuses) the processing record; the caller schedules
        process_upload as a background task.
        """

        return await self._repo.upsert_by_name(filename, infer_document_type(filename))

    async def process_upload(self, doc_id: str, filename: str, data: bytes) -> None:
        """
        Background job. Never raises.
        """

        try:

            text = await asyncio.to_thread(extract_file_text, filename, data)

            doc = await self._repo.get(doc_id)

            await self._complete(doc, text)

        except Exception as e:
            await self._mark_error(doc_id, e)

    # ============================================================
    # URLS
    # ============================================================

    async def ingest_urls(self, urls: List[str]) -> List[IngestItemResult]:

        results = []

        for url in urls:

            try:

                text = await load_url_text_async(url)

                name = filename_from_url(url)

                doc = await self._repo.upsert_by_name(name, DocumentType.THESIS)

                doc = await self._complete(doc, text)

                ok = doc.status == DocumentStatus.READY

                results.append(
                    IngestItemResult(
                        source=url,
                        ok=ok,
                        document_id=doc.id,
                        reason=None if ok else "No text extracted",
                    )
                )

            except (
                requests.RequestException,
                UnsupportedContentError,
                ValueError,
                BackendError,
            ) as e:

                logger.warning(
                    "URL ingestion failed",
                    extra={"url": url, "error": str(e)},
                )

                results.append(IngestItemResult(source=url, ok=False, reason=str(e)))

        return results

    # ============================================================
    # LOCAL DIRECTORY
    # ============================================================

    async def ingest_local(self, path: Optional[str] = None) -> List[IngestItemResult]:
        """
        Every PDF in the directory. Raises FileNotFoundError when the
        directory does not exist.
        """

        path = path or self._thesis_path

        if not path or not os.path.isdir(path):
            raise FileNotFoundError(f"Path not found: {path}")

        names = sorted(
            f for f in os.listdir(path)
            if f.lower().endswith(".pdf")
        )

        results = []

        for name in names:

            full = os.path.join(path, name)

            try:

                data = await asyncio.to_thread(_read_bytes, full)

                text = await asyncio.to_thread(extract_file_text, name, data)

                doc = await self._repo.upsert_by_name(name, DocumentType.THESIS)

                doc = await self._complete(doc, text)

                ok = doc.status == DocumentStatus.READY

                results.append(
                    IngestItemResult(
                        source=name,
                        ok=ok,
                        document_id=doc.id,
                        reason=None if ok else "No text extracted",
                    )
                )

            except (OSError, ValueError, BackendError) as e:

                logger.warning(
                    "Local ingestion failed",
                    extra={"file_path": full, "error": str(e)},
                )

                results.append(IngestItemResult(source=name, ok=False, reason=str(e)))

        return results


def _read_bytes(path: str) -> bytes:

    with open(path, "rb") as f:
        return f.read()
