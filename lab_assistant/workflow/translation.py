# lab_assistant/workflow/translation.py

"""
Translation and staged summarization over the completion oracle.

A failed translation chunk becomes a placeholder instead of failing the
request; a failed summary becomes an error message. Missing credentials
always propagate.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from lab_assistant.config import (
    SUMMARY_CHUNK_CHARS,
    TRANSLATION_CHUNK_CHARS,
    TRANSLATION_MODEL,
)
from lab_assistant.errors import CompletionError, MissingCredentialsError
from lab_assistant.prompts.system_prompts import (
    SUMMARY_CHUNK_SYSTEM_PROMPT,
    SUMMARY_CHUNK_USER_TEMPLATE,
    SUMMARY_ERROR_MESSAGE,
    SUMMARY_MERGE_SYSTEM_PROMPT,
    SUMMARY_MERGE_USER_TEMPLATE,
    TRANSLATION_ERROR_PLACEHOLDER,
    TRANSLATION_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)


_SENTENCE_BREAK = re.compile(r"(?<=[.。！？!?])\s+")


def split_text_into_chunks(text: str, max_chars: int) -> List[str]:
    """
    Sentence-aligned chunks of at most max_chars; a sentence longer than
    max_chars is cut into fixed windows.
    """

    chunks: List[str] = []
    current = ""

    for sentence in _SENTENCE_BREAK.split(text or ""):

        if not sentence:
            continue

        candidate = f"{current} {sentence}" if current else sentence

        if len(candidate) <= max_chars:
            current = candidate
            continue

        if current:
            chunks.append(current.strip())

        while len(sentence) > max_chars:
            chunks.append(sentence[:max_chars])
            sentence = sentence[max_chars:]

        current = sentence

    if current.strip():
        chunks.append(current.strip())

    return [c for c in chunks if c]


@dataclass
class TranslationResult:
    translation: Optional[str] = None
    summary: Optional[str] = None


class TranslationService:

    def __init__(self, completion_client, default_model: str = TRANSLATION_MODEL):

        self._llm = completion_client
        self._default_model = default_model

    async def translate(
        self,
        text: str,
        target_language: str,
        model: Optional[str] = None,
        include_summary: bool = False,
        custom_prompt: str = "",
    ) -> TranslationResult:

        model = model or self._default_model

        chunks = split_text_into_chunks(text, TRANSLATION_CHUNK_CHARS)

        system_prompt = TRANSLATION_SYSTEM_PROMPT.format(target_language=target_language)

        translated = []

        for i, chunk in enumerate(chunks):

            try:

                translated.append(
                    await self._llm.complete(
                        system_prompt,
                        [],
                        chunk,
                        model=model,
                        temperature=0.2,
                        max_tokens=4000,
                    )
                )

            except MissingCredentialsError:
                raise

            except CompletionError as e:

                logger.warning(
                    "Translation chunk failed",
                    extra={"chunk_index": i, "error": str(e)},
                )

                translated.append(TRANSLATION_ERROR_PLACEHOLDER.format(index=i + 1))

        result = TranslationResult(translation="\n\n".join(translated))

        if include_summary:
            result.summary = await self._summarize(result.translation or text, model, custom_prompt)

        logger.info(
            "Translation completed",
            extra={
                "chunks": len(chunks),
                "target_language": target_language,
                "summary": include_summary,
            },
        )

        return result

    async def _summarize(self, text: str, model: str, instructions: str) -> str:
        """
        Summarize each chunk, then merge the partial summaries.
        """

        try:

            partials = []

            for chunk in split_text_into_chunks(text, SUMMARY_CHUNK_CHARS):

                partials.append(
                    await self._llm.complete(
                        SUMMARY_CHUNK_SYSTEM_PROMPT,
                        [],
                        SUMMARY_CHUNK_USER_TEMPLATE.format(chunk=chunk),
                        model=model,
                        temperature=0.3,
                        max_tokens=1000,
                    )
                )

            return await self._llm.complete(
                SUMMARY_MERGE_SYSTEM_PROMPT,
                [],
                SUMMARY_MERGE_USER_TEMPLATE.format(
                    instructions=instructions,
                    summaries="\n\n".join(partials),
                ),
                model=model,
                temperature=0.4,
                max_tokens=2000,
            )

        except MissingCredentialsError:
            raise

        except CompletionError as e:

            logger.warning("Summary generation failed", extra={"error": str(e)})

            return SUMMARY_ERROR_MESSAGE
