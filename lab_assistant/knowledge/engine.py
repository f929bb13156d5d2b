# lab_assistant/knowledge/engine.py

"""
Knowledge retrieval engine.

Architecture contract:
corpus_cache → intent classifier → keyword scorer | semantic rerank

Guarantees:
• search() never raises; every failure degrades to keyword search over
  the full corpus, and to [] if even that fails
• semantic rerank embeds at most SEMANTIC_MAX_CANDIDATES documents
• a failed chunk embedding contributes nothing instead of aborting
"""

import logging
from typing import List, Sequence

import numpy as np

from lab_assistant.config import (
    SEMANTIC_MAX_CANDIDATES,
    SEMANTIC_ON_THE_FLY_MAX_CHARS,
    SIMILARITY_FLOOR,
    TOP_K,
)
from lab_assistant.errors import BackendError, EmbeddingError
from lab_assistant.knowledge.intent import QueryIntent, QueryPlan, classify_query
from lab_assistant.knowledge.scoring import ScoredDocument, rank_by_keywords
from lab_assistant.knowledge.seed import load_seed_corpus
from lab_assistant.knowledge.tokenizer import expand_keywords, is_name_shaped, tokenize_query
from lab_assistant.memory.chunker import chunk_text
from lab_assistant.models import Document, SearchMode

logger = logging.getLogger(__name__)


def max_cosine(query_vector: Sequence[float], vectors: Sequence[Sequence[float]]) -> float:
    """
    Highest cosine similarity between the query and any of the vectors.
    """

    if not vectors:
        return 0.0

    q = np.asarray(query_vector, dtype="float32")
    m = np.asarray(vectors, dtype="float32")

    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        return 0.0

    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)

    sims = np.divide(
        m @ q,
        norms,
        out=np.zeros(len(m), dtype="float32"),
        where=norms > 0,
    )

    return float(sims.max())


def prefilter_tokens(tokens: Sequence[str]) -> List[str]:
    return [t for t in tokens if is_name_shaped(t) or len(t) > 2]


def prefilter(documents: Sequence[Document], tokens: Sequence[str]) -> List[Document]:
    """
    Documents whose author, title or content contains any token.
    """

    if not tokens:
        return []

    out = []

    for doc in documents:

        haystack = " ".join(
            [(doc.author or ""), (doc.title or ""), (doc.content or "")]
        ).lower()

        if any(t in haystack for t in tokens):
            out.append(doc)

    return out


class KnowledgeRetrievalEngine:

    def __init__(
        self,
        corpus_cache,
        vector_store=None,
        embedder=None,
        top_k: int = TOP_K,
        max_candidates: int = SEMANTIC_MAX_CANDIDATES,
        similarity_floor: float = SIMILARITY_FLOOR,
        on_the_fly_max_chars: int = SEMANTIC_ON_THE_FLY_MAX_CHARS,
    ):

        self._cache = corpus_cache
        self._vectors = vector_store
        self._embedder = embedder
        self._top_k = top_k
        self._max_candidates = max_candidates
        self._floor = similarity_floor
        self._on_the_fly_max_chars = on_the_fly_max_chars

    # ============================================================
    # PUBLIC API
    # ============================================================

    async def load_corpus(self, bypass_cache: bool = False) -> List[Document]:

        try:
            return await self._cache.get(bypass=bypass_cache)
        except Exception as e:

            logger.error(
                "Corpus load failed, using seed corpus",
                extra={"error": str(e)},
            )

            return load_seed_corpus()

    async def search(
        self,
        query: str,
        mode: SearchMode = SearchMode.SEMANTIC,
        *,
        bypass_cache: bool = False,
    ) -> List[ScoredDocument]:

        corpus = await self.load_corpus(bypass_cache)

        try:

            plan = classify_query(query, corpus)

            results = await self._run_plan(query, mode, plan, corpus)

        except Exception as e:

            logger.warning(
                "Search degraded to keyword mode",
                extra={"error": str(e), "mode": SearchMode(mode).value},
            )

            try:
                results = self.keyword_search(query, corpus)
            except Exception as inner:

                logger.error(
                    "Keyword fallback failed",
                    extra={"error": str(inner)},
                )

                return []

            return results

        logger.info(
            "Search completed",
            extra={
                "mode": SearchMode(mode).value,
                "intent": plan.intent.value,
                "corpus_size": len(corpus),
                "results": len(results),
            },
        )

        return results

    def keyword_search(
        self,
        query: str,
        documents: Sequence[Document],
    ) -> List[ScoredDocument]:
        """
        Plain keyword ranking over the given documents.
        """

        keywords = expand_keywords(tokenize_query(query))

        return rank_by_keywords(documents, keywords, query=query, top_k=self._top_k)

    # ============================================================
    # PLAN EXECUTION
    # ============================================================

    async def _run_plan(
        self,
        query: str,
        mode: SearchMode,
        plan: QueryPlan,
        corpus: Sequence[Document],
    ) -> List[ScoredDocument]:

        if plan.intent == QueryIntent.FIELD_INQUIRY:
            return rank_by_keywords(corpus, plan.keywords, query=query, top_k=self._top_k)

        if plan.intent == QueryIntent.AUTHOR_LOOKUP:
            return rank_by_keywords(plan.author_pool, plan.keywords, query=query, top_k=self._top_k)

        if SearchMode(mode) == SearchMode.KEYWORD:
            return rank_by_keywords(corpus, plan.keywords, query=query, top_k=self._top_k)

        return await self._semantic_search(query, plan, corpus)

    async def _semantic_search(
        self,
        query: str,
        plan: QueryPlan,
        corpus: Sequence[Document],
    ) -> List[ScoredDocument]:

        candidates = prefilter(corpus, prefilter_tokens(plan.tokens))

        if not candidates:
            return rank_by_keywords(corpus, plan.keywords, query=query, top_k=self._top_k)

        if len(candidates) > self._max_candidates or self._embedder is None:

            logger.info(
                "Semantic prefilter too broad, ranking by keywords",
                extra={"candidates": len(candidates)},
            )

            return rank_by_keywords(candidates, plan.keywords, query=query, top_k=self._top_k)

        return await self._semantic_rerank(query, candidates)

    # ============================================================
    # SEMANTIC RERANK
    # ============================================================

    async def _indexed_ids(self) -> set:

        if self._vectors is None:
            return set()

        try:
            return set(await self._vectors.list_indexed_ids())
        except BackendError as e:

            logger.warning(
                "Vector index unreadable, embedding on the fly",
                extra={"error": str(e)},
            )

            return set()

    async def _document_vectors(self, doc: Document, indexed: set) -> List[List[float]]:

        if doc.id in indexed:

            try:

                chunks = await self._vectors.get_chunks(doc.id)

                if chunks:
                    return [c.embedding for c in chunks]

            except BackendError as e:

                logger.warning(
                    "Stored chunks unreadable",
                    extra={"doc_id": doc.id, "error": str(e)},
                )

        vectors = []

        for piece in chunk_text((doc.content or "")[:self._on_the_fly_max_chars]):

            try:
                vectors.append(await self._embedder.embed(piece))
            except EmbeddingError as e:

                logger.warning(
                    "Chunk embedding failed, skipping chunk",
                    extra={"doc_id": doc.id, "error": str(e)},
                )

        return vectors

    async def _semantic_rerank(
        self,
        query: str,
        candidates: Sequence[Document],
    ) -> List[ScoredDocument]:

        query_vector = await self._embedder.embed(query)

        indexed = await self._indexed_ids()

        scored = []

        for doc in candidates:

            vectors = await self._document_vectors(doc, indexed)

            scored.append(
                ScoredDocument(
                    document=doc,
                    score=max_cosine(query_vector, vectors),
                    method="semantic",
                )
            )

        scored.sort(key=lambda s: s.score, reverse=True)

        return [s for s in scored[:self._top_k] if s.score >= self._floor]
