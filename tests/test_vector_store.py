# tests/test_vector_store.py
import pytest
from conftest import FakeEmbedder, make_doc

from lab_assistant.memory.chunker import chunk_text
from lab_assistant.memory.kv_client import InMemoryKVClient
from lab_assistant.memory.store import VECTOR_INDEX_KEY, KVVectorStore


class TestChunker:

    @pytest.mark.parametrize("length", [0, 1, 1499, 1500, 1501, 4000])
    def test_concatenation_restores_text(self, length):
        text = "".join(chr(0x3042 + (i % 80)) for i in range(length))

        chunks = chunk_text(text)

        assert "".join(chunks) == text
        assert all(0 < len(c) <= 1500 for c in chunks)

    def test_chunk_count(self):
        assert len(chunk_text("a" * 3001, max_len=1000)) == 4

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            chunk_text("abc", max_len=0)


class TestStoreChunks:

    async def test_store_and_read_back(self):
        store = KVVectorStore(InMemoryKVClient())

        count = await store.store_chunks("doc_1", "a" * 3200, FakeEmbedder())

        chunks = await store.get_chunks("doc_1")

        assert count == 3
        assert [c.idx for c in chunks] == [0, 1, 2]
        assert await store.list_indexed_ids() == ["doc_1"]

    async def test_restoring_replaces_chunks(self):
        kv = InMemoryKVClient()
        store = KVVectorStore(kv)

        await store.store_chunks("doc_1", "a" * 3200, FakeEmbedder())
        await store.store_chunks("doc_1", "b" * 100, FakeEmbedder())

        assert len(await store.get_chunks("doc_1")) == 1
        assert await kv.get(VECTOR_INDEX_KEY) == ["doc_1"]

    async def test_max_chars_truncates(self):
        store = KVVectorStore(InMemoryKVClient())

        assert await store.store_chunks("doc_1", "a" * 5000, FakeEmbedder(), max_chars=1500) == 1

    async def test_empty_text_writes_nothing(self):
        store = KVVectorStore(InMemoryKVClient())

        assert await store.store_chunks("doc_1", "", FakeEmbedder()) == 0
        assert await store.list_indexed_ids() == []

    async def test_missing_document(self):
        store = KVVectorStore(InMemoryKVClient())

        assert await store.get_chunks("nope") == []

    async def test_reset(self):
        store = KVVectorStore(InMemoryKVClient())

        await store.store_chunks("doc_1", "text", FakeEmbedder())
        await store.reset()

        assert await store.list_indexed_ids() == []
        assert await store.get_chunks("doc_1") == []


class TestGradualEnsure:

    async def test_indexed_documents_are_skipped(self):
        store = KVVectorStore(InMemoryKVClient())
        embedder = FakeEmbedder()

        docs = [make_doc(f"d{i}", content=f"内容{i}") for i in range(5)]

        await store.store_chunks("d0", "内容0", embedder)

        before = await store.get_chunks("d0")

        assert await store.ensure_vectors_gradual(docs, embedder) == ["d1", "d2", "d3"]
        assert await store.ensure_vectors_gradual(docs, embedder) == ["d4"]
        assert await store.ensure_vectors_gradual(docs, embedder) == []

        assert await store.get_chunks("d0") == before

    async def test_documents_without_content_are_skipped(self):
        store = KVVectorStore(InMemoryKVClient())

        docs = [make_doc("empty"), make_doc("full", content="内容")]

        assert await store.ensure_vectors_gradual(docs, FakeEmbedder()) == ["full"]

    async def test_embedding_failures_are_swallowed(self):
        store = KVVectorStore(InMemoryKVClient())

        docs = [
            make_doc("bad", content="BROKEN text"),
            make_doc("good", content="fine text"),
        ]

        done = await store.ensure_vectors_gradual(docs, FakeEmbedder(fail_on="BROKEN"))

        assert done == ["good"]
        assert await store.list_indexed_ids() == ["good"]
