"""RAG module - Retrieval-Augmented Generation system"""

from learning_assistant.rag.chain import Answer, AnswerComposer
from learning_assistant.rag.orchestrator import ProviderOrchestrator
from learning_assistant.rag.pipeline import EmbeddingPipeline
from learning_assistant.rag.retriever import RetrievalResult, RetrievedChunk, Retriever
from learning_assistant.rag.factory import (
    get_answer_composer,
    get_orchestrator,
    get_pipeline,
    get_registry,
    get_retriever
)

__all__ = [
    'Answer',
    'AnswerComposer',
    'ProviderOrchestrator',
    'EmbeddingPipeline',
    'RetrievalResult',
    'RetrievedChunk',
    'Retriever',
    'get_answer_composer',
    'get_orchestrator',
    'get_pipeline',
    'get_registry',
    'get_retriever'
]
