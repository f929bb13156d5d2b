# tests/test_llm_client.py
from types import SimpleNamespace

import httpx
import openai
import pytest

from lab_assistant.errors import (
    CompletionAuthError,
    CompletionError,
    CompletionQuotaError,
    EmbeddingError,
    MissingCredentialsError,
)
from lab_assistant.llm.client import CompletionClient, classify_openai_error
from lab_assistant.memory.embedder import Embedder, api_key_status


REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(cls, status_code, message="error"):
    return cls(message, response=httpx.Response(status_code, request=REQUEST), body=None)


class FakeCompletions:

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):

        self.kwargs = kwargs

        if self.error is not None:
            raise self.error

        message = SimpleNamespace(content=self.reply)

        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestErrorClassification:

    def test_auth(self):
        error = status_error(openai.AuthenticationError, 401)

        assert isinstance(classify_openai_error(error), CompletionAuthError)

    def test_rate_limit(self):
        error = status_error(openai.RateLimitError, 429)

        assert isinstance(classify_openai_error(error), CompletionQuotaError)

    def test_billing_status(self):
        error = status_error(openai.APIStatusError, 402)

        assert isinstance(classify_openai_error(error), CompletionQuotaError)

    def test_other_failure(self):
        error = openai.APIConnectionError(request=REQUEST)

        classified = classify_openai_error(error)

        assert type(classified) is CompletionError
        assert classified.status_code == 502


class TestCompletionClient:

    async def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(MissingCredentialsError):
            await CompletionClient().complete("system", [], "hello")

    async def test_placeholder_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "your_openai_api_key_here")

        assert api_key_status() == "placeholder"

        with pytest.raises(MissingCredentialsError):
            await CompletionClient().complete("system", [], "hello")

    async def test_messages_are_assembled(self):
        completions = FakeCompletions(reply="  回答  ")
        client = CompletionClient(client=fake_openai(completions), model="gpt-test")

        reply = await client.complete(
            "system",
            [{"role": "user", "content": "前の質問"}],
            "質問",
        )

        assert reply == "回答"
        assert completions.kwargs["model"] == "gpt-test"
        assert completions.kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "前の質問"},
            {"role": "user", "content": "質問"},
        ]

    async def test_sdk_errors_are_classified(self):
        completions = FakeCompletions(error=status_error(openai.RateLimitError, 429))
        client = CompletionClient(client=fake_openai(completions))

        with pytest.raises(CompletionQuotaError):
            await client.complete("system", [], "hello")


class FakeEmbeddings:

    def __init__(self, drop_one=False):
        self.inputs = []
        self.drop_one = drop_one

    async def create(self, model, input):

        self.inputs.append(list(input))

        data = [SimpleNamespace(embedding=[float(len(t)), 1.0]) for t in input]

        if self.drop_one:
            data = data[:-1]

        return SimpleNamespace(data=data)


class TestEmbedder:

    async def test_batches_and_truncation(self):
        embeddings = FakeEmbeddings()
        embedder = Embedder(client=SimpleNamespace(embeddings=embeddings))

        vectors = await embedder.embed_many(["a", "b" * 9000, "c"], batch_size=2)

        assert len(embeddings.inputs) == 2
        assert vectors[1] == [8000.0, 1.0]
        assert len(vectors) == 3

    async def test_count_mismatch(self):
        embedder = Embedder(client=SimpleNamespace(embeddings=FakeEmbeddings(drop_one=True)))

        with pytest.raises(EmbeddingError):
            await embedder.embed_many(["a", "b"])

    async def test_missing_key_is_an_embedding_error(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(EmbeddingError):
            await Embedder().embed("text")

    async def test_empty_input(self):
        assert await Embedder(client=SimpleNamespace()).embed_many([]) == []

