# lab_assistant/api/dependencies.py

"""
Service wiring.

One Services container per process, built lazily on first use. Routes
receive it through FastAPI's dependency system so tests can replace it
with app.dependency_overrides[get_services].
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from lab_assistant.config import (
    BLOB_STORAGE_DIR,
    CORPUS_CACHE_TTL_SECONDS,
    DEFAULT_THESIS_PATH,
    QDRANT_URL,
    VECTOR_BACKEND,
)
from lab_assistant.knowledge.engine import KnowledgeRetrievalEngine
from lab_assistant.llm.client import CompletionClient
from lab_assistant.memory.blob_store import LocalBlobStore
from lab_assistant.memory.corpus_cache import CorpusCache, repository_loader
from lab_assistant.memory.embedder import Embedder, api_key_status
from lab_assistant.memory.kv_client import KVClient, build_kv_client
from lab_assistant.memory.repository import DocumentRepository, build_repository
from lab_assistant.memory.store import KVVectorStore, VectorStore
from lab_assistant.workflow.chat import ChatOrchestrator
from lab_assistant.workflow.ingestion import IngestionService
from lab_assistant.workflow.translation import TranslationService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    kv: KVClient
    repository: DocumentRepository
    corpus_cache: CorpusCache
    vector_store: VectorStore
    embedder: Embedder
    completion: CompletionClient
    engine: KnowledgeRetrievalEngine
    chat: ChatOrchestrator
    ingestion: IngestionService
    translation: TranslationService


def build_vector_store(kv: KVClient, backend: str = VECTOR_BACKEND) -> VectorStore:

    if backend == "qdrant" and QDRANT_URL:

        from lab_assistant.memory.qdrant_client import QdrantVectorStore

        return QdrantVectorStore()

    if backend == "qdrant":
        logger.warning("VECTOR_BACKEND=qdrant but QDRANT_URL not set, using KV vectors")

    return KVVectorStore(kv)


def build_services(
    kv: Optional[KVClient] = None,
    blob_store: Optional[LocalBlobStore] = None,
    embedder=None,
    completion=None,
    vector_store: Optional[VectorStore] = None,
    thesis_path: Optional[str] = DEFAULT_THESIS_PATH,
    clock: Callable[[], float] = time.monotonic,
    gradual_vectors: Optional[bool] = None,
) -> Services:
    """
    Wire every layer. Any collaborator can be injected; the rest are
    built from configuration.
    """

    kv = kv or build_kv_client()
    blob_store = blob_store or LocalBlobStore(BLOB_STORAGE_DIR)
    embedder = embedder or Embedder()
    completion = completion or CompletionClient()
    vector_store = vector_store or build_vector_store(kv)

    if gradual_vectors is None:
        gradual_vectors = api_key_status() == "configured"

    repository = build_repository(kv, blob_store, thesis_path=thesis_path)

    corpus_cache = CorpusCache(
        repository_loader(repository),
        repository.read_version,
        ttl_seconds=CORPUS_CACHE_TTL_SECONDS,
        clock=clock,
    )

    engine = KnowledgeRetrievalEngine(
        corpus_cache,
        vector_store=vector_store,
        embedder=embedder,
    )

    services = Services(
        kv=kv,
        repository=repository,
        corpus_cache=corpus_cache,
        vector_store=vector_store,
        embedder=embedder,
        completion=completion,
        engine=engine,
        chat=ChatOrchestrator(
            engine,
            completion,
            vector_store=vector_store,
            embedder=embedder,
            gradual_vectors=gradual_vectors,
        ),
        ingestion=IngestionService(
            repository,
            vector_store=vector_store,
            embedder=embedder,
            thesis_path=thesis_path,
        ),
        translation=TranslationService(completion),
    )

    logger.info(
        "Services initialized",
        extra={
            "kv_enabled": kv.enabled,
            "vector_backend": vector_store.backend,
            "document_backends": repository.backend_names,
        },
    )

    return services


_services: Optional[Services] = None


def get_services() -> Services:

    global _services

    if _services is None:
        _services = build_services()

    return _services
