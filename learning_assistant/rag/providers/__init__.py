"""Upstream AI providers"""

from learning_assistant.rag.providers.base import (
    BaseProvider,
    Capability,
    ChatPreferences,
    ChatResult,
    EmbeddingResult,
    HybridSignal,
)
from learning_assistant.rag.providers.registry import (
    ProviderDescriptor,
    ProviderRegistry,
    build_registry,
)

__all__ = [
    'BaseProvider',
    'Capability',
    'ChatPreferences',
    'ChatResult',
    'EmbeddingResult',
    'HybridSignal',
    'ProviderDescriptor',
    'ProviderRegistry',
    'build_registry'
]
