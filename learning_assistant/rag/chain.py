"""Answer composition over retrieved chunks"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import time

from learning_assistant.rag.config import RAGConfig, rag_config
from learning_assistant.rag.orchestrator import ProviderOrchestrator
from learning_assistant.rag.prompt_templates import (
    NO_INFORMATION_ANSWER,
    build_grounding_block,
    build_user_messages,
)
from learning_assistant.rag.providers.base import ChatPreferences
from learning_assistant.rag.retriever import RetrievalResult, RetrievedChunk

logger = logging.getLogger(__name__)


@dataclass
class Answer:
    """Final answer with citations"""
    text: str
    sources: List[Dict[str, Any]] = field(default_factory=list)
    confidence: int = 0
    mode: str = "embedding"
    model_name: Optional[str] = None
    provider: Optional[str] = None


class AnswerComposer:
    """Builds the grounded prompt and asks the orchestrator for the answer"""

    def __init__(self, orchestrator: ProviderOrchestrator, config: RAGConfig = rag_config):
        self.orchestrator = orchestrator
        self.config = config

    def build_sources(self, chunks: List[RetrievedChunk]) -> List[Dict[str, Any]]:
        """Citation entries: title, short snippet and similarity percentage"""
        return [
            {
                'document_id': chunk.document_id,
                'document_title': chunk.document_title,
                'snippet': chunk.text[:self.config.snippet_length] + '...',
                'similarity': round(chunk.similarity * 100)
            }
            for chunk in chunks
        ]

    async def answer(self, question: str, retrieval: RetrievalResult) -> Answer:
        """
        Answer a question from the retrieved chunks only

        Provider failures propagate so the caller can report a
        "try again later" error, distinct from the no-information answer
        returned when nothing was retrieved.

        Args:
            question: Student question
            retrieval: Ranked chunks from the retriever

        Returns:
            Answer with sources and confidence
        """
        if retrieval.is_empty:
            return Answer(text=NO_INFORMATION_ANSWER, mode=retrieval.mode)

        start_time = time.time()
        grounding = build_grounding_block(retrieval.chunks)

        response = await self.orchestrator.chat_complete(
            build_user_messages(question),
            grounding,
            ChatPreferences(
                temperature=self.config.answer_temperature,
                max_tokens=self.config.answer_max_tokens
            )
        )

        generation_time = time.time() - start_time
        logger.info(
            f"Generated answer with {response.provider} ({response.model_name}) in {generation_time:.2f}s, "
            f"~{response.token_estimate} tokens, {len(retrieval.chunks)} chunks"
        )

        return Answer(
            text=response.text,
            sources=self.build_sources(retrieval.chunks),
            confidence=retrieval.confidence,
            mode=retrieval.mode,
            model_name=response.model_name,
            provider=response.provider
        )
