# lab_assistant/workflow/chat.py

"""
Chat orchestration: retrieve, refuse or answer.

Guarantees:
• retrieval never raises past this layer (the engine degrades)
• empty or low-confidence retrieval returns the no-data template
  without calling the completion oracle
• completion errors propagate as CompletionError subclasses
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from lab_assistant.config import KEYWORD_MIN_CONFIDENCE
from lab_assistant.knowledge.scoring import ScoredDocument
from lab_assistant.knowledge.text_utils import make_snippet
from lab_assistant.knowledge.tokenizer import tokenize_query
from lab_assistant.models import ChatSource, SearchMode
from lab_assistant.prompts.prompt_builder import (
    build_context,
    build_system_prompt,
    trim_history,
)
from lab_assistant.prompts.system_prompts import NO_RELEVANT_DATA_RESPONSE

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    response: str
    sources: List[ChatSource] = field(default_factory=list)
    refused: bool = False
    reasoning: Optional[str] = None
    top_score: float = 0.0
    search_method: Optional[str] = None


def build_sources(results: Sequence[ScoredDocument], query: str) -> List[ChatSource]:

    query_tokens = tokenize_query(query)

    sources = []

    for result in results:

        doc = result.document

        sources.append(
            ChatSource(
                id=doc.id,
                title=doc.title,
                author=doc.author,
                year=doc.year,
                score=round(float(result.score), 4),
                snippet=make_snippet(doc.content or "", result.matched_keywords or query_tokens),
            )
        )

    return sources


class ChatOrchestrator:

    def __init__(
        self,
        engine,
        completion_client,
        vector_store=None,
        embedder=None,
        min_confidence: float = KEYWORD_MIN_CONFIDENCE,
        gradual_vectors: bool = True,
    ):

        self._engine = engine
        self._llm = completion_client
        self._vectors = vector_store
        self._embedder = embedder
        self._min_confidence = min_confidence
        self._gradual_vectors = gradual_vectors

    def _refusal(self, reason: str, top: Optional[ScoredDocument] = None) -> ChatResult:

        logger.info(
            "Chat answered with no-data template",
            extra={"reason": reason},
        )

        return ChatResult(
            response=NO_RELEVANT_DATA_RESPONSE,
            refused=True,
            reasoning=reason,
            top_score=top.score if top else 0.0,
            search_method=top.method if top else None,
        )

    async def answer(
        self,
        message: str,
        search_mode: SearchMode = SearchMode.SEMANTIC,
        history: Sequence = (),
        bypass_cache: bool = False,
    ) -> ChatResult:

        results = await self._engine.search(message, search_mode, bypass_cache=bypass_cache)

        if not results:
            return self._refusal("No relevant documents found")

        top = results[0]

        if top.method == "keyword" and top.score < self._min_confidence:
            return self._refusal(
                f"Top keyword score ({top.score}) below threshold ({self._min_confidence})",
                top,
            )

        system_prompt = build_system_prompt(build_context(results))

        response = await self._llm.complete(
            system_prompt,
            trim_history(history),
            message,
        )

        await self._ensure_vectors()

        return ChatResult(
            response=response,
            sources=build_sources(results, message),
            top_score=top.score,
            search_method=top.method,
        )

    async def _ensure_vectors(self) -> None:

        if not self._gradual_vectors or self._vectors is None or self._embedder is None:
            return

        corpus = await self._engine.load_corpus()

        done = await self._vectors.ensure_vectors_gradual(corpus, self._embedder)

        if done:
            logger.info("Gradual vectorization", extra={"doc_ids": done})
