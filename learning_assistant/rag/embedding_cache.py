"""Redis cache for embedding vectors"""

from typing import List, Optional
import hashlib
import json
import logging

import redis

from learning_assistant.rag.config import rag_config

logger = logging.getLogger(__name__)


class EmbeddingCache:
    """Embedding cache keyed by provider and text hash; failures are cache misses"""

    def __init__(self, redis_url: str = rag_config.redis_url, ttl: int = rag_config.cache_ttl,
                 enabled: bool = rag_config.enable_cache):
        self.ttl = ttl
        self.enabled = enabled
        self.redis_client = None
        if self.enabled:
            try:
                self.redis_client = redis.from_url(
                    redis_url,
                    decode_responses=False,  # Store bytes for embeddings
                    socket_connect_timeout=2
                )
                logger.info("Redis cache enabled for embeddings")
            except Exception as e:
                logger.warning(f"Failed to connect to Redis cache: {e}")
                self.enabled = False

    def _get_cache_key(self, provider: str, text: str) -> str:
        """Generate cache key for text"""
        return f"emb:{provider}:{hashlib.md5(text.encode()).hexdigest()}"

    def get(self, provider: str, text: str) -> Optional[List[float]]:
        """Get embedding from cache"""
        if not self.enabled:
            return None

        try:
            cached = self.redis_client.get(self._get_cache_key(provider, text))
            if cached:
                logger.debug("Cache hit for embedding")
                return json.loads(cached)
        except Exception as e:
            logger.warning(f"Cache retrieval error: {e}")

        return None

    def set(self, provider: str, text: str, embedding: List[float]):
        """Save embedding to cache"""
        if not self.enabled:
            return

        try:
            self.redis_client.setex(
                self._get_cache_key(provider, text),
                self.ttl,
                json.dumps(embedding)
            )
        except Exception as e:
            logger.warning(f"Cache save error: {e}")
