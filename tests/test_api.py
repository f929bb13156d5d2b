# tests/test_api.py
import json

from lab_assistant.errors import (
    CompletionAuthError,
    CompletionQuotaError,
    MissingCredentialsError,
)
from lab_assistant.prompts.system_prompts import NO_RELEVANT_DATA_RESPONSE


def upload_text(client, filename="修論_小野健太.txt", text="視線計測による注意配分の評価実験"):

    return client.post(
        "/upload",
        files={"file": (filename, text.encode("utf-8"), "text/plain")},
    )


class TestRoot:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health"] == "/health"

    def test_json_declares_utf8(self, client):
        response = client.get("/documents")

        assert "charset=utf-8" in response.headers["content-type"]


class TestHealthEndpoint:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200

        data = response.json()

        assert data["status"] == "healthy"
        assert data["kv_enabled"] is True
        assert data["vector_backend"] == "kv"
        assert data["total_documents"] == 38
        assert data["indexed_documents"] == 0


class TestUploadEndpoint:

    def test_upload_becomes_ready(self, client):
        response = upload_text(client)

        assert response.status_code == 200

        doc_id = response.json()["documentId"]

        assert doc_id.startswith("doc_")

        documents = client.get("/documents").json()["documents"]

        assert documents[0]["id"] == doc_id
        assert documents[0]["status"] == "ready"
        assert documents[0]["author"] == "小野健太"
        assert documents[0]["type"] == "thesis"

    def test_same_name_reuses_document(self, client):
        first = upload_text(client).json()["documentId"]
        second = upload_text(client).json()["documentId"]

        assert first == second
        assert len(client.get("/documents").json()["documents"]) == 1

    def test_wrong_extension(self, client):
        response = client.post(
            "/upload",
            files={"file": ("slides.pptx", b"data", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert ".pdf" in response.json()["detail"]

    def test_empty_file(self, client):
        response = client.post(
            "/upload",
            files={"file": ("empty.pdf", b"", "application/pdf")},
        )

        assert response.status_code == 400

    def test_file_too_large(self, client):
        large = b"%PDF-1.4\n" + b"x" * (51 * 1024 * 1024)

        response = client.post(
            "/upload",
            files={"file": ("huge.pdf", large, "application/pdf")},
        )

        assert response.status_code == 413
        assert "too large" in response.json()["detail"].lower()

    def test_unreadable_pdf_is_marked_error(self, client):
        response = client.post(
            "/upload",
            files={"file": ("broken.pdf", b"not a pdf", "application/pdf")},
        )

        assert response.status_code == 200

        documents = client.get("/documents").json()["documents"]

        assert documents[0]["status"] == "error"


class TestChatEndpoint:

    def test_no_overlap_returns_template(self, client, fake_completion):
        response = client.post("/chat", json={"message": "9876543210", "searchMode": "keyword"})

        assert response.status_code == 200
        assert response.json() == {"response": NO_RELEVANT_DATA_RESPONSE, "sources": []}
        assert fake_completion.calls == []

    def test_answer_with_sources(self, client, fake_completion):
        response = client.post(
            "/chat",
            json={
                "message": "Vision Transformer",
                "searchMode": "keyword",
                "history": [{"role": "user", "content": "こんにちは"}],
            },
        )

        assert response.status_code == 200

        data = response.json()

        assert data["response"] == "回答です。"
        assert data["sources"][0]["author"] == "山田花子"
        assert fake_completion.calls[0]["history"] == [{"role": "user", "content": "こんにちは"}]

    def test_uploaded_document_is_searchable(self, client):
        upload_text(client, "修論_小野健太.txt", "瞳孔径の変化によるメンタルワークロード評価")

        response = client.post("/chat", json={"message": "小野さんの研究", "searchMode": "semantic"})

        sources = response.json()["sources"]

        assert sources[0]["author"] == "小野健太"

    def test_blank_message_rejected(self, client):
        response = client.post("/chat", json={"message": "   "})

        assert response.status_code == 422

    def test_missing_credentials(self, client, fake_completion):
        fake_completion.error = MissingCredentialsError("OpenAI API key not configured")

        response = client.post("/chat", json={"message": "Vision Transformer", "searchMode": "keyword"})

        assert response.status_code == 500
        assert "not configured" in response.json()["detail"]

    def test_auth_failure(self, client, fake_completion):
        fake_completion.error = CompletionAuthError("invalid key")

        response = client.post("/chat", json={"message": "Vision Transformer", "searchMode": "keyword"})

        assert response.status_code == 401

    def test_quota_failure(self, client, fake_completion):
        fake_completion.error = CompletionQuotaError("quota exceeded")

        response = client.post("/chat", json={"message": "Vision Transformer", "searchMode": "keyword"})

        assert response.status_code == 429

    def test_cache_bypass_headers(self, client, services):
        body = {"message": "9876543210"}

        client.post("/chat", json=body)
        client.post("/chat", json=body)

        assert services.corpus_cache.reload_count == 1

        client.post("/chat", json=body, headers={"X-Bypass-Cache": "1"})
        client.post("/chat", json=body, headers={"Cache-Control": "no-cache"})

        assert services.corpus_cache.reload_count == 3


class TestPdfEndpoint:

    def test_unreadable_pdf(self, client):
        response = client.post(
            "/pdf",
            files={"pdf": ("paper.pdf", b"not a pdf", "application/pdf")},
            data={"settings": json.dumps({"startSection": "第2章", "endSection": "第3章"})},
        )

        assert response.status_code == 200

        data = response.json()

        assert data["text"] == ""
        assert data["extractedSections"] is None
        assert data["metadata"]["pages"] == 0

    def test_invalid_settings_are_ignored(self, client):
        response = client.post(
            "/pdf",
            files={"pdf": ("paper.pdf", b"not a pdf", "application/pdf")},
            data={"settings": "{not json"},
        )

        assert response.status_code == 200

    def test_empty_pdf(self, client):
        response = client.post("/pdf", files={"pdf": ("paper.pdf", b"", "application/pdf")})

        assert response.status_code == 400


class TestTranslateEndpoint:

    def test_translation_only(self, client, fake_completion):
        fake_completion.reply = "Translated."

        response = client.post(
            "/translate",
            json={"text": "原文です。", "settings": {"targetLanguage": "English"}},
        )

        assert response.status_code == 200
        assert response.json() == {"translation": "Translated."}

    def test_with_summary(self, client, fake_completion):
        fake_completion.reply = "Text."

        response = client.post(
            "/translate",
            json={
                "text": "原文です。",
                "settings": {"targetLanguage": "English", "includesSummary": True},
            },
        )

        assert response.json() == {"translation": "Text.", "summary": "Text."}

    def test_missing_credentials(self, client, fake_completion):
        fake_completion.error = MissingCredentialsError("OpenAI API key not configured")

        response = client.post(
            "/translate",
            json={"text": "原文", "settings": {"targetLanguage": "English"}},
        )

        assert response.status_code == 500


class TestIngestEndpoints:

    def test_local_without_directory(self, client):
        assert client.post("/ingest/local").status_code == 404

    def test_urls(self, client, monkeypatch):

        async def fake_load(url):
            return "本文"

        monkeypatch.setattr("lab_assistant.workflow.ingestion.load_url_text_async", fake_load)

        response = client.post("/ingest/urls", json={"urls": ["https://x.jp/a.pdf"]})

        data = response.json()

        assert data["success"] is True
        assert data["count"] == 1
        assert data["results"][0]["ok"] is True

    def test_urls_required(self, client):
        assert client.post("/ingest/urls", json={"urls": []}).status_code == 422


class TestMaintenanceEndpoints:

    def test_reset(self, client, services):
        upload_text(client)

        response = client.post("/maintenance/reset")

        assert response.json() == {"ok": True, "count": 1}
        assert client.get("/documents").json()["documents"] == []

    def test_backfill(self, client):
        upload_text(client)

        response = client.post("/maintenance/backfill")

        assert response.json() == {"ok": True, "count": 0}


class TestMetricsEndpoint:

    def test_metrics(self, client):
        client.get("/")

        data = client.get("/metrics").json()

        assert data["total_requests"] >= 1
        assert "p95_latency" in data
        assert "latencies" not in data
