"""Factory for the RAG components

Each component is built once per process from settings. The getters double
as FastAPI dependencies, so tests swap them via ``app.dependency_overrides``.
"""

from functools import lru_cache
import logging

from learning_assistant.config import settings
from learning_assistant.rag.backoff import RetryPolicy
from learning_assistant.rag.chain import AnswerComposer
from learning_assistant.rag.config import rag_config
from learning_assistant.rag.embedding_cache import EmbeddingCache
from learning_assistant.rag.orchestrator import ProviderOrchestrator
from learning_assistant.rag.pipeline import EmbeddingPipeline
from learning_assistant.rag.providers.registry import ProviderRegistry, build_registry
from learning_assistant.rag.retriever import Retriever

logger = logging.getLogger(__name__)


@lru_cache()
def get_registry() -> ProviderRegistry:
    """Provider registry built from configured credentials"""
    registry = build_registry(settings)
    enabled = [d["name"] for d in registry.describe() if d["enabled"]]
    logger.info(f"AI providers enabled: {', '.join(enabled) or 'none'} (default: {registry.default_provider})")
    return registry


@lru_cache()
def get_orchestrator() -> ProviderOrchestrator:
    """Provider orchestrator shared by all requests and background jobs"""
    cache = EmbeddingCache() if rag_config.enable_cache else None
    return ProviderOrchestrator(get_registry(), RetryPolicy(), cache)


@lru_cache()
def get_retriever() -> Retriever:
    return Retriever(get_orchestrator(), rag_config)


@lru_cache()
def get_answer_composer() -> AnswerComposer:
    return AnswerComposer(get_orchestrator(), rag_config)


@lru_cache()
def get_pipeline() -> EmbeddingPipeline:
    return EmbeddingPipeline(get_orchestrator(), rag_config)
