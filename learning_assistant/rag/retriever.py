"""Retrieval engine: vector ranking with an LLM-selection (hybrid) fallback"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import logging
import math
import re

import numpy as np

from learning_assistant.models.document import Document, RETRIEVABLE_STATUSES
from learning_assistant.rag.config import RAGConfig, rag_config
from learning_assistant.rag.error_classifier import is_quota_error
from learning_assistant.rag.orchestrator import ProviderOrchestrator
from learning_assistant.rag.prompt_templates import build_hybrid_selection_prompt, build_user_messages
from learning_assistant.rag.providers.base import ChatPreferences, HybridSignal
from learning_assistant.rag.similarity import cosine_similarities

logger = logging.getLogger(__name__)

MODE_EMBEDDING = "embedding"
MODE_HYBRID = "hybrid"

INDEX_LIST_PATTERN = re.compile(r"\[\s*(\d+(?:\s*,\s*\d+)*)\s*\]")


@dataclass(frozen=True)
class RetrievedChunk:
    """A ranked chunk with its source document"""
    document_id: int
    document_title: str
    chunk_index: int
    text: str
    similarity: float


@dataclass
class RetrievalResult:
    """Ranked chunks plus aggregate confidence"""
    chunks: List[RetrievedChunk] = field(default_factory=list)
    confidence: int = 0
    mode: str = MODE_EMBEDDING
    # Set when hybrid selection could not be parsed and the first chunks were used
    ranking_fallback: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.chunks


@dataclass(frozen=True)
class _Candidate:
    document_id: int
    document_title: str
    chunk_index: int
    text: str
    vector: Optional[List[float]]


def compute_confidence(similarities: Sequence[float]) -> int:
    """round(mean similarity x 100), halves rounded up"""
    if not similarities:
        return 0
    mean = sum(similarities) / len(similarities)
    return int(math.floor(mean * 100 + 0.5))


def parse_chunk_indices(text: str, count: int) -> Optional[List[int]]:
    """
    Parse a bracketed list of chunk indices from a model response

    Indices outside ``0..count-1`` are discarded, duplicates keep their
    first position.

    Returns:
        Valid indices in response order, or None if nothing usable was found
    """
    match = INDEX_LIST_PATTERN.search(text or "")
    if not match:
        return None

    indices = []
    for part in match.group(1).split(","):
        idx = int(part.strip())
        if 0 <= idx < count and idx not in indices:
            indices.append(idx)
    return indices or None


class Retriever:
    """Ranks stored chunks of a course against a question"""

    def __init__(self, orchestrator: ProviderOrchestrator, config: RAGConfig = rag_config):
        self.orchestrator = orchestrator
        self.config = config

    def collect_candidates(self, documents: Sequence[Document]) -> List[_Candidate]:
        """Chunks of active, processed documents in document/chunk order"""
        candidates = []
        for doc in sorted(documents, key=lambda d: d.id or 0):
            if not doc.is_active or doc.status not in RETRIEVABLE_STATUSES:
                continue
            for chunk in sorted(doc.chunks, key=lambda c: c.chunk_index):
                candidates.append(
                    _Candidate(
                        document_id=doc.id,
                        document_title=doc.title or "Untitled",
                        chunk_index=chunk.chunk_index,
                        text=chunk.chunk_text,
                        vector=chunk.vector or None
                    )
                )
        return candidates

    async def retrieve(
        self,
        documents: Sequence[Document],
        question: str,
        top_k: Optional[int] = None
    ) -> RetrievalResult:
        """
        Retrieve the most relevant chunks for a question

        Args:
            documents: Documents in the course scope
            question: Student question
            top_k: Number of chunks to return (default: from config)

        Returns:
            RetrievalResult; empty with confidence 0 when the scope holds no chunks
        """
        top_k = top_k or self.config.top_k
        candidates = self.collect_candidates(documents)

        if not candidates:
            logger.info("No processed chunks in scope")
            return RetrievalResult(mode=MODE_EMBEDDING)

        if not any(c.vector for c in candidates):
            logger.info("No embedded chunks in scope, using hybrid RAG mode")
            return await self.retrieve_hybrid(question, candidates, top_k)

        try:
            response = await self.orchestrator.embed(question)
        except Exception as e:
            if is_quota_error(e):
                logger.warning(f"Embedding quota exceeded, switching to hybrid RAG mode: {e}")
                return await self.retrieve_hybrid(question, candidates, top_k)
            raise

        if isinstance(response, HybridSignal):
            logger.info(f"Using hybrid RAG mode ({response.reason})")
            return await self.retrieve_hybrid(question, candidates, top_k)

        return self.rank_by_similarity(response.vector, candidates, top_k)

    def rank_by_similarity(
        self,
        query_vector: List[float],
        candidates: Sequence[_Candidate],
        top_k: int
    ) -> RetrievalResult:
        """Cosine-rank embedded candidates, highest first"""
        embedded = [c for c in candidates if c.vector]
        dimension = len(query_vector)
        matching = [i for i, c in enumerate(embedded) if len(c.vector) == dimension]

        # Vectors of another width keep a score of 0
        scores = np.zeros(len(embedded))
        if matching:
            matrix = np.array([embedded[i].vector for i in matching], dtype=float)
            scores[matching] = cosine_similarities(query_vector, matrix)

        scored = sorted(zip(scores.tolist(), embedded), key=lambda item: item[0], reverse=True)

        chunks = [
            RetrievedChunk(
                document_id=c.document_id,
                document_title=c.document_title,
                chunk_index=c.chunk_index,
                text=c.text,
                similarity=max(0.0, score)
            )
            for score, c in scored[:top_k]
        ]

        logger.info(f"Retrieved {len(chunks)} chunks by similarity")
        for i, chunk in enumerate(chunks, 1):
            logger.debug(f"  {i}. Score: {chunk.similarity:.3f} - {chunk.document_title}")

        return RetrievalResult(
            chunks=chunks,
            confidence=compute_confidence([c.similarity for c in chunks]),
            mode=MODE_EMBEDDING
        )

    async def retrieve_hybrid(
        self,
        question: str,
        candidates: Sequence[_Candidate],
        top_k: int
    ) -> RetrievalResult:
        """
        Ask a chat model to pick relevant chunks by index

        Falls back to the first ``top_k`` chunks when the model's answer
        cannot be used or the call fails.
        """
        previews = [c.text[:self.config.hybrid_preview_length] for c in candidates]
        prompt = build_hybrid_selection_prompt(question, previews, top_k)

        indices = None
        try:
            response = await self.orchestrator.chat_complete(
                build_user_messages(prompt),
                "",
                ChatPreferences(temperature=0.1, max_tokens=100)
            )
            indices = parse_chunk_indices(response.text, len(candidates))
            if indices is None:
                logger.warning("Could not parse chunk indices from hybrid selection response")
        except Exception as e:
            logger.error(f"Hybrid RAG error: {e}")

        if indices is None:
            selected = list(candidates[:top_k])
            similarity = self.config.hybrid_fallback_similarity
            ranking_fallback = True
        else:
            selected = [candidates[i] for i in indices[:top_k]]
            similarity = self.config.hybrid_match_similarity
            ranking_fallback = False

        chunks = [
            RetrievedChunk(
                document_id=c.document_id,
                document_title=c.document_title,
                chunk_index=c.chunk_index,
                text=c.text,
                similarity=similarity
            )
            for c in selected
        ]

        logger.info(f"Hybrid mode selected {len(chunks)} chunks (fallback: {ranking_fallback})")
        return RetrievalResult(
            chunks=chunks,
            confidence=compute_confidence([c.similarity for c in chunks]),
            mode=MODE_HYBRID,
            ranking_fallback=ranking_fallback
        )
