"""Token estimation"""

from functools import lru_cache
import logging

import tiktoken

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_encoding():
    try:
        return tiktoken.get_encoding("cl100k_base")
    except Exception as e:
        logger.warning(f"tiktoken encoding unavailable, using character estimate: {e}")
        return None


def count_tokens(text: str) -> int:
    """Count tokens in text"""
    if not text:
        return 0
    encoding = _get_encoding()
    if encoding is not None:
        return len(encoding.encode(text))
    # Rough estimate: 1 token ≈ 4 characters
    return len(text) // 4


def count_messages_tokens(messages) -> int:
    """Count tokens in message list"""
    total = 0
    for message in messages:
        # Each message has overhead (role, content, etc.)
        total += 4
        total += count_tokens(str(message.get("content", "")))
    total += 2  # Overhead for entire request
    return total
