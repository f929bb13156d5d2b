# lab_assistant/memory/corpus_cache.py

"""
In-process corpus cache with TTL and version reconciliation.

The cache is valid only while both hold:

• the TTL has not elapsed since the last fill
• the version reader returns the version seen at that fill

A bypass forces a reload. Concurrent reloads are allowed; the merge is
idempotent, so the last one simply wins.
"""

import logging
import time
from typing import Awaitable, Callable, List, Optional

from lab_assistant.config import CORPUS_CACHE_TTL_SECONDS
from lab_assistant.errors import BackendError
from lab_assistant.knowledge.seed import load_seed_corpus
from lab_assistant.models import Document, DocumentStatus

logger = logging.getLogger(__name__)


Loader = Callable[[], Awaitable[List[Document]]]
VersionReader = Callable[[], Awaitable[int]]


class CorpusCache:

    def __init__(
        self,
        loader: Loader,
        version_reader: VersionReader,
        ttl_seconds: float = CORPUS_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):

        self._loader = loader
        self._version_reader = version_reader
        self._ttl = ttl_seconds
        self._clock = clock

        self._documents: Optional[List[Document]] = None
        self._filled_at: Optional[float] = None
        self._version: Optional[int] = None

        self.reload_count = 0

    async def _read_version(self):
        """
        (version, ok). ok is False when the reader failed.
        """

        try:
            return await self._version_reader(), True
        except BackendError as e:

            logger.warning(
                "Version read failed, cache validity falls back to TTL",
                extra={"error": str(e)},
            )

            return None, False

    def _fresh(self) -> bool:

        return (
            self._documents is not None
            and self._filled_at is not None
            and self._clock() - self._filled_at < self._ttl
        )

    async def get(self, bypass: bool = False) -> List[Document]:

        version, version_ok = await self._read_version()

        if not bypass and self._fresh():

            if not version_ok or version == self._version:
                return self._documents

        try:
            documents = await self._loader()
        except Exception as e:

            if self._documents is None:
                raise

            logger.warning(
                "Corpus reload failed, serving stale corpus",
                extra={"error": str(e)},
            )

            return self._documents

        self._documents = list(documents)
        self._filled_at = self._clock()
        self._version = version
        self.reload_count += 1

        logger.info(
            "Corpus reloaded",
            extra={
                "documents": len(self._documents),
                "version": version,
                "bypass": bypass,
                "reload_count": self.reload_count,
            },
        )

        return self._documents


def merge_corpus(seed: List[Document], uploaded: List[Document]) -> List[Document]:
    """
    Seed documents plus ready uploads with content, deduped by id.
    """

    merged = {doc.id: doc for doc in seed}

    for doc in uploaded:

        if doc.status == DocumentStatus.READY and doc.has_content:
            merged[doc.id] = doc

    return list(merged.values())


def repository_loader(repository) -> Loader:

    async def load() -> List[Document]:
        return merge_corpus(load_seed_corpus(), await repository.list())

    return load
