# tests/test_corpus_cache.py
import pytest
from conftest import make_doc

from lab_assistant.errors import KVBackendError
from lab_assistant.memory.corpus_cache import CorpusCache, merge_corpus
from lab_assistant.models import DocumentStatus


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class Backing:
    """Loader and version reader over mutable state."""

    def __init__(self):
        self.documents = [make_doc("a", content="内容")]
        self.version = 1
        self.fail_load = False
        self.fail_version = False

    async def load(self):

        if self.fail_load:
            raise RuntimeError("storage down")

        return list(self.documents)

    async def read_version(self):

        if self.fail_version:
            raise KVBackendError("kv down")

        return self.version


@pytest.fixture
def backing():
    return Backing()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(backing, clock):
    return CorpusCache(backing.load, backing.read_version, ttl_seconds=60, clock=clock)


class TestValidity:

    async def test_second_read_within_ttl_does_not_reload(self, cache):
        await cache.get()
        await cache.get()

        assert cache.reload_count == 1

    async def test_ttl_expiry_reloads(self, cache, clock):
        await cache.get()

        clock.now += 61

        await cache.get()

        assert cache.reload_count == 2

    async def test_version_bump_reloads(self, cache, backing):
        await cache.get()

        backing.version += 1
        backing.documents.append(make_doc("b", content="新しい"))

        documents = await cache.get()

        assert cache.reload_count == 2
        assert [d.id for d in documents] == ["a", "b"]

    async def test_bypass_reloads(self, cache):
        await cache.get()
        await cache.get(bypass=True)

        assert cache.reload_count == 2


class TestFailures:

    async def test_version_failure_falls_back_to_ttl(self, cache, backing, clock):
        await cache.get()

        backing.fail_version = True

        await cache.get()

        assert cache.reload_count == 1

        clock.now += 61

        await cache.get()

        assert cache.reload_count == 2

    async def test_stale_corpus_served_when_reload_fails(self, cache, backing):
        await cache.get()

        backing.fail_load = True
        backing.version += 1

        documents = await cache.get()

        assert [d.id for d in documents] == ["a"]
        assert cache.reload_count == 1

    async def test_first_load_failure_raises(self, cache, backing):
        backing.fail_load = True

        with pytest.raises(RuntimeError):
            await cache.get()


class TestMergeCorpus:

    def test_only_ready_documents_with_content(self):
        seed = [make_doc("seed", content="種")]

        uploaded = [
            make_doc("ready", content="内容"),
            make_doc("processing", status=DocumentStatus.PROCESSING),
            make_doc("empty"),
            make_doc("failed", content="x", status=DocumentStatus.ERROR),
        ]

        assert [d.id for d in merge_corpus(seed, uploaded)] == ["seed", "ready"]

    def test_upload_replaces_seed_with_same_id(self):
        seed = [make_doc("same", content="old")]
        uploaded = [make_doc("same", content="new")]

        assert merge_corpus(seed, uploaded)[0].content == "new"
