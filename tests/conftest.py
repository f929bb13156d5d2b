# tests/conftest.py
import os
import tempfile

# Metrics and logs must not land in the working tree during tests
_TEST_ROOT = tempfile.mkdtemp(prefix="lab_assistant_tests_")
os.environ.setdefault("METRICS_PATH", os.path.join(_TEST_ROOT, "metrics.json"))
os.environ.setdefault("LOG_DIR", os.path.join(_TEST_ROOT, "logs"))
os.environ.pop("KV_REST_API_URL", None)
os.environ.pop("KV_REST_API_TOKEN", None)
os.environ.pop("POSTHOG_API_KEY", None)

from datetime import datetime, timedelta, timezone
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from lab_assistant.errors import EmbeddingError
from lab_assistant.memory.blob_store import LocalBlobStore
from lab_assistant.memory.kv_client import InMemoryKVClient
from lab_assistant.models import Document, DocumentStatus, DocumentType


# ============================================================
# ORACLE FAKES
# ============================================================

class FakeEmbedder:
    """
    Deterministic embeddings: a vector per text, looked up by substring.

    Texts matching no entry get the default vector. `fail_on` makes any
    text containing that marker raise EmbeddingError.
    """

    def __init__(self, vectors: Dict[str, List[float]] = None, default=None, fail_on: str = None):

        self.vectors = vectors or {}
        self.default = default or [1.0, 0.0, 0.0]
        self.fail_on = fail_on
        self.calls: List[str] = []

    def _vector(self, text: str) -> List[float]:

        if self.fail_on and self.fail_on in text:
            raise EmbeddingError("oracle unavailable")

        for marker, vector in self.vectors.items():

            if marker in text:
                return vector

        return self.default

    async def embed(self, text: str) -> List[float]:

        self.calls.append(text)

        return self._vector(text)

    async def embed_many(self, texts, batch_size: int = 32):

        self.calls.extend(texts)

        return [self._vector(t) for t in texts]


class FakeCompletion:
    """
    Records every call; returns `reply` or raises `error`.
    """

    def __init__(self, reply: str = "回答です。", error: Exception = None):

        self.reply = reply
        self.error = error
        self.calls = []
        self.model = "fake-model"

    async def complete(self, system_prompt, history, user_message, **kwargs):

        self.calls.append(
            {
                "system_prompt": system_prompt,
                "history": list(history),
                "user_message": user_message,
                **kwargs,
            }
        )

        if self.error is not None:
            raise self.error

        return self.reply


class StaticCorpus:
    """
    Stand-in for CorpusCache serving a fixed document list.
    """

    def __init__(self, documents: List[Document]):
        self.documents = documents

    async def get(self, bypass: bool = False) -> List[Document]:
        return self.documents


# ============================================================
# DOCUMENT FACTORY
# ============================================================

_BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_doc(
    doc_id: str,
    name: str = "",
    content: str = "",
    author: str = None,
    status: DocumentStatus = DocumentStatus.READY,
    minutes: int = 0,
    year: int = None,
) -> Document:

    return Document(
        id=doc_id,
        name=name or f"{doc_id}.pdf",
        type=DocumentType.THESIS,
        content=content,
        author=author,
        year=year,
        status=status,
        uploaded_at=_BASE_TIME + timedelta(minutes=minutes),
    )


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def kv():
    return InMemoryKVClient()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "blob"))


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fake_completion():
    return FakeCompletion()


@pytest.fixture
def services(kv, blob_store, fake_embedder, fake_completion):
    """
    Fully wired services over in-memory KV, a tmp blob dir and fake oracles.
    """

    from lab_assistant.api.dependencies import build_services

    return build_services(
        kv=kv,
        blob_store=blob_store,
        embedder=fake_embedder,
        completion=fake_completion,
        thesis_path=None,
        gradual_vectors=False,
    )


@pytest.fixture
def client(services):
    """
    FastAPI test client with the services dependency overridden.
    """

    from lab_assistant.api.dependencies import get_services
    from lab_assistant.main import app

    app.dependency_overrides[get_services] = lambda: services

    yield TestClient(app)

    app.dependency_overrides.clear()
