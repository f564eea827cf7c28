"""Provider interface and normalized result types"""

from dataclasses import dataclass, replace
from typing import Dict, FrozenSet, List, Optional
import enum

from learning_assistant.config import settings


class Capability(str, enum.Enum):
    """What a provider can be asked to do"""
    CHAT = "chat"
    EMBEDDING = "embedding"


@dataclass(frozen=True)
class ChatPreferences:
    """Per-call generation preferences"""
    provider: Optional[str] = None
    model: Optional[str] = None
    temperature: float = settings.AI_TEMPERATURE
    max_tokens: int = settings.AI_MAX_TOKENS


@dataclass(frozen=True)
class ChatResult:
    """Chat completion normalized across providers"""
    text: str
    token_estimate: int
    model_name: str
    provider: str
    fallback_used: bool = False

    def as_fallback(self) -> "ChatResult":
        return replace(self, fallback_used=True)


@dataclass(frozen=True)
class EmbeddingResult:
    """Embedding vector normalized across providers"""
    vector: List[float]
    token_estimate: int
    model_name: str
    provider: str
    fallback_used: bool = False

    def as_fallback(self) -> "EmbeddingResult":
        return replace(self, fallback_used=True)


@dataclass(frozen=True)
class HybridSignal:
    """Returned by ``embed`` when only text-based relevance matching is possible"""
    reason: str


class BaseProvider:
    """
    Common interface of every upstream AI backend

    Concrete providers translate the normalized call into their own SDK and
    convert the SDK response back into ``ChatResult`` / ``EmbeddingResult``.
    """

    name: str = "base"
    capabilities: FrozenSet[Capability] = frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    async def chat(
        self,
        messages: List[Dict[str, str]],
        system_instruction: str,
        preferences: ChatPreferences
    ) -> ChatResult:
        raise NotImplementedError(f"{self.name} does not support chat")

    async def embed(self, text: str) -> EmbeddingResult:
        raise NotImplementedError(f"{self.name} does not support embeddings")

    def __repr__(self):
        caps = ",".join(sorted(c.value for c in self.capabilities))
        return f"<{self.__class__.__name__}(name={self.name}, capabilities={caps})>"
