"""RAG system configuration"""

from learning_assistant.config import settings
from dataclasses import dataclass


@dataclass
class RAGConfig:
    """Configuration for RAG system"""

    # Chunking
    chunk_size: int = settings.RAG_CHUNK_SIZE
    chunk_overlap: int = settings.RAG_CHUNK_OVERLAP
    max_chunks: int = settings.RAG_MAX_CHUNKS
    max_content_length: int = settings.RAG_MAX_CONTENT_LENGTH

    # Embedding pipeline
    embed_batch_size: int = settings.RAG_EMBED_BATCH_SIZE
    batch_pause_seconds: float = settings.RAG_BATCH_PAUSE_SECONDS

    # Retrieval
    top_k: int = settings.RAG_TOP_K
    hybrid_preview_length: int = settings.RAG_HYBRID_PREVIEW_LENGTH
    # Heuristic similarities used when a language model picks the chunks
    hybrid_match_similarity: float = 0.7
    hybrid_fallback_similarity: float = 0.5

    # Answer composition
    snippet_length: int = 100
    answer_temperature: float = 0.7
    answer_max_tokens: int = 500

    # Redis Cache
    enable_cache: bool = settings.RAG_ENABLE_CACHE
    redis_url: str = settings.REDIS_URL
    cache_ttl: int = settings.RAG_CACHE_TTL


# Global RAG config instance
rag_config = RAGConfig()
