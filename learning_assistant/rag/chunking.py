"""Fixed-window text chunking"""

from typing import List, Optional
import logging

from learning_assistant.rag.config import rag_config

logger = logging.getLogger(__name__)


def truncate_content(text: str, max_length: Optional[int] = None) -> str:
    """Cut text to the processing cap before it is chunked"""
    max_length = max_length if max_length is not None else rag_config.max_content_length
    if len(text) > max_length:
        logger.info(f"Truncating content from {len(text)} to {max_length} characters")
        return text[:max_length]
    return text


def chunk_text(
    text: str,
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
    max_chunks: Optional[int] = None,
    max_length: Optional[int] = None
) -> List[str]:
    """
    Split text into overlapping fixed-size character windows

    The window advances by ``chunk_size - overlap`` characters. Windows
    that are empty or whitespace-only are dropped; the others are kept
    verbatim so consecutive chunks share exactly ``overlap`` characters.

    Args:
        text: Text to chunk
        chunk_size: Window size in characters
        overlap: Characters shared by consecutive windows
        max_chunks: Stop after this many chunks
        max_length: Truncate text to this length first

    Returns:
        Ordered list of chunk strings
    """
    chunk_size = rag_config.chunk_size if chunk_size is None else chunk_size
    overlap = rag_config.chunk_overlap if overlap is None else overlap
    max_chunks = rag_config.max_chunks if max_chunks is None else max_chunks

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not 0 <= overlap < chunk_size:
        raise ValueError("overlap must be non-negative and smaller than chunk_size")

    text = truncate_content(text or "", max_length)
    step = chunk_size - overlap

    chunks = []
    start = 0
    while start < len(text) and len(chunks) < max_chunks:
        end = min(start + chunk_size, len(text))
        window = text[start:end]
        if window.strip():
            chunks.append(window)
        if end >= len(text):
            break
        start += step

    logger.info(f"Split text into {len(chunks)} chunks (size: {chunk_size}, overlap: {overlap})")
    return chunks
