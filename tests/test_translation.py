# tests/test_translation.py
import pytest

from lab_assistant.errors import CompletionError, MissingCredentialsError
from lab_assistant.prompts.system_prompts import SUMMARY_ERROR_MESSAGE
from lab_assistant.workflow.translation import (
    TranslationService,
    split_text_into_chunks,
)


class ScriptedCompletion:
    """Replies in order; an Exception entry is raised instead."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, system_prompt, history, user_message, **kwargs):

        self.calls.append({"system_prompt": system_prompt, "user_message": user_message, **kwargs})

        reply = self.replies.pop(0)

        if isinstance(reply, Exception):
            raise reply

        return reply


class TestSplitText:

    def test_short_text_is_one_chunk(self):
        assert split_text_into_chunks("短い文。 もう一つ。", 100) == ["短い文。 もう一つ。"]

    def test_sentences_are_grouped_under_limit(self):
        text = "First sentence. Second sentence. Third sentence."

        chunks = split_text_into_chunks(text, 35)

        assert chunks == ["First sentence. Second sentence.", "Third sentence."]

    def test_long_sentence_is_cut(self):
        chunks = split_text_into_chunks("a" * 25, 10)

        assert chunks == ["a" * 10, "a" * 10, "a" * 5]

    def test_empty(self):
        assert split_text_into_chunks("", 10) == []


class TestTranslate:

    async def test_single_chunk(self):
        llm = ScriptedCompletion(["Translated."])

        result = await TranslationService(llm).translate("原文です。", "English")

        assert result.translation == "Translated."
        assert result.summary is None
        assert "English" in llm.calls[0]["system_prompt"]

    async def test_failed_chunk_becomes_placeholder(self, monkeypatch):
        monkeypatch.setattr("lab_assistant.workflow.translation.TRANSLATION_CHUNK_CHARS", 10)

        llm = ScriptedCompletion(["one", CompletionError("boom")])

        result = await TranslationService(llm).translate("aaaa bbbb. cccc dddd.", "English")

        assert result.translation == "one\n\n[翻訳エラー: チャンク 2]"

    async def test_missing_credentials_propagate(self):
        llm = ScriptedCompletion([MissingCredentialsError("no key")])

        with pytest.raises(MissingCredentialsError):
            await TranslationService(llm).translate("原文", "English")

    async def test_summary_is_staged(self):
        llm = ScriptedCompletion(["Translated.", "partial", "final summary"])

        result = await TranslationService(llm).translate(
            "原文です。",
            "English",
            include_summary=True,
            custom_prompt="箇条書きで",
        )

        assert result.summary == "final summary"
        assert len(llm.calls) == 3
        assert "箇条書きで" in llm.calls[2]["user_message"]
        assert "partial" in llm.calls[2]["user_message"]

    async def test_summary_failure_returns_message(self):
        llm = ScriptedCompletion(["Translated.", CompletionError("boom")])

        result = await TranslationService(llm).translate("原文です。", "English", include_summary=True)

        assert result.translation == "Translated."
        assert result.summary == SUMMARY_ERROR_MESSAGE

    async def test_model_override(self):
        llm = ScriptedCompletion(["ok"])

        await TranslationService(llm, default_model="gpt-default").translate("x", "English", model="gpt-custom")

        assert llm.calls[0]["model"] == "gpt-custom"
