# tests/test_ingestion.py
import pytest
import requests
from conftest import FakeEmbedder

from lab_assistant.errors import UnsupportedContentError
from lab_assistant.memory.kv_client import InMemoryKVClient
from lab_assistant.memory.repository import build_repository
from lab_assistant.memory.store import KVVectorStore
from lab_assistant.models import DocumentStatus, DocumentType
from lab_assistant.workflow.ingestion import IngestionService, infer_document_type


@pytest.fixture
def repository(blob_store):
    return build_repository(InMemoryKVClient(), blob_store, thesis_path=None)


@pytest.fixture
def vector_store():
    return KVVectorStore(InMemoryKVClient())


def make_service(repository, vector_store, embedder=None, thesis_path=None):

    return IngestionService(
        repository,
        vector_store=vector_store,
        embedder=embedder or FakeEmbedder(),
        thesis_path=thesis_path,
    )


class TestDocumentType:

    def test_thesis_markers(self):
        assert infer_document_type("修論_小野.pdf") == DocumentType.THESIS
        assert infer_document_type("卒論.txt") == DocumentType.THESIS

    def test_pdf_is_paper(self):
        assert infer_document_type("survey.pdf") == DocumentType.PAPER

    def test_other_is_document(self):
        assert infer_document_type("notes.md") == DocumentType.DOCUMENT


class TestUpload:

    async def test_text_upload_becomes_ready(self, repository, vector_store):
        service = make_service(repository, vector_store)

        doc = await service.start_upload("修論_山田次郎.txt")

        assert doc.status == DocumentStatus.PROCESSING

        await service.process_upload(doc.id, "修論_山田次郎.txt", "視線計測の実験   結果\n\n考察".encode("utf-8"))

        stored = await repository.get(doc.id)

        assert stored.status == DocumentStatus.READY
        assert stored.content == "視線計測の実験 結果 考察"
        assert stored.author == "山田次郎"
        assert stored.type == DocumentType.THESIS
        assert await vector_store.list_indexed_ids() == [doc.id]

    async def test_unreadable_pdf_marks_error(self, repository, vector_store):
        service = make_service(repository, vector_store)

        doc = await service.start_upload("broken.pdf")

        await service.process_upload(doc.id, "broken.pdf", b"not a pdf at all")

        stored = await repository.get(doc.id)

        assert stored.status == DocumentStatus.ERROR
        assert await vector_store.list_indexed_ids() == []

    async def test_vectorization_failure_keeps_document_ready(self, repository, vector_store):
        service = make_service(repository, vector_store, embedder=FakeEmbedder(fail_on="視線"))

        doc = await service.start_upload("notes.txt")

        await service.process_upload(doc.id, "notes.txt", "視線計測".encode("utf-8"))

        assert (await repository.get(doc.id)).status == DocumentStatus.READY
        assert await vector_store.list_indexed_ids() == []

    async def test_retry_after_error_is_processed(self, repository, vector_store):
        service = make_service(repository, vector_store)

        failed = await service.start_upload("notes.txt")

        await service.process_upload(failed.id, "notes.txt", b"   ")

        assert (await repository.get(failed.id)).status == DocumentStatus.ERROR

        retry = await service.start_upload("notes.txt")

        assert retry.id != failed.id

        await service.process_upload(retry.id, "notes.txt", "視線計測の実験".encode("utf-8"))

        stored = await repository.get(retry.id)

        assert stored.status == DocumentStatus.READY
        assert stored.content == "視線計測の実験"

    async def test_background_job_never_raises(self, repository, vector_store):
        service = make_service(repository, vector_store)

        await service.process_upload("doc_missing", "a.txt", b"text")


class TestUrlIngestion:

    async def test_mixed_results(self, repository, vector_store, monkeypatch):

        async def fake_load(url):

            if url.endswith("bad"):
                raise UnsupportedContentError("Unsupported content-type: image/png")

            if url.endswith("down"):
                raise requests.ConnectionError("unreachable")

            return "本文テキスト"

        monkeypatch.setattr("lab_assistant.workflow.ingestion.load_url_text_async", fake_load)

        service = make_service(repository, vector_store)

        results = await service.ingest_urls([
            "https://example.com/theses/%E5%B0%8F%E9%87%8E.pdf",
            "https://example.com/bad",
            "https://example.com/down",
        ])

        assert [r.ok for r in results] == [True, False, False]
        assert "image/png" in results[1].reason

        doc = await repository.get(results[0].document_id)

        assert doc.name == "小野.pdf"
        assert doc.status == DocumentStatus.READY

    async def test_empty_text_is_reported(self, repository, vector_store, monkeypatch):

        async def fake_load(url):
            return "   "

        monkeypatch.setattr("lab_assistant.workflow.ingestion.load_url_text_async", fake_load)

        results = await make_service(repository, vector_store).ingest_urls(["https://example.com/empty.pdf"])

        assert not results[0].ok
        assert results[0].reason == "No text extracted"


class TestLocalIngestion:

    async def test_missing_directory(self, repository, vector_store, tmp_path):
        service = make_service(repository, vector_store, thesis_path=str(tmp_path / "missing"))

        with pytest.raises(FileNotFoundError):
            await service.ingest_local()

    async def test_no_directory_configured(self, repository, vector_store):
        with pytest.raises(FileNotFoundError):
            await make_service(repository, vector_store).ingest_local()

    async def test_unreadable_pdf_is_reported(self, repository, vector_store, tmp_path):
        (tmp_path / "修論_小野健太.pdf").write_bytes(b"garbage")
        (tmp_path / "notes.txt").write_text("ignored")

        service = make_service(repository, vector_store, thesis_path=str(tmp_path))

        results = await service.ingest_local()

        assert len(results) == 1
        assert results[0].source == "修論_小野健太.pdf"
        assert not results[0].ok

        doc = await repository.get(results[0].document_id)

        assert doc.status == DocumentStatus.ERROR
        assert doc.type == DocumentType.THESIS
