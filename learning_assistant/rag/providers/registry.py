"""Provider registry: the static, immutable provider-chain configuration"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple
import logging

from learning_assistant.config import Settings
from learning_assistant.rag.providers.base import BaseProvider, Capability

logger = logging.getLogger(__name__)

# Fixed fallback priority; embeddings only come from providers that support them
PROVIDER_PRIORITY: Tuple[str, ...] = ("openrouter", "gemini", "groq", "openai")

PROVIDER_CAPABILITIES: Dict[str, FrozenSet[Capability]] = {
    "openrouter": frozenset({Capability.CHAT}),
    "gemini": frozenset({Capability.CHAT, Capability.EMBEDDING}),
    "groq": frozenset({Capability.CHAT}),
    "openai": frozenset({Capability.CHAT, Capability.EMBEDDING}),
}


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static description of one upstream backend"""
    name: str
    capabilities: FrozenSet[Capability]
    priority: int
    enabled: bool
    provider: Optional[BaseProvider] = None

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True)
class ProviderRegistry:
    """
    Immutable set of provider descriptors, ordered by priority

    Built once at startup from the credentials present and handed to the
    orchestrator explicitly.
    """
    descriptors: Tuple[ProviderDescriptor, ...]
    default_provider: Optional[str] = None

    def enabled(self, capability: Capability) -> List[ProviderDescriptor]:
        return [
            d for d in self.descriptors
            if d.enabled and d.provider is not None and d.supports(capability)
        ]

    def has_capability(self, capability: Capability) -> bool:
        return bool(self.enabled(capability))

    def chain_for(self, capability: Capability, preferred: Optional[str] = None) -> List[BaseProvider]:
        """
        Build the ordered provider chain for one call

        The preferred provider leads when it is enabled and supports the
        capability; every other enabled provider follows in priority order,
        each at most once.

        Args:
            capability: Capability required for the call
            preferred: Caller's preferred provider name (default: registry default)

        Returns:
            Ordered list of providers to try
        """
        preferred = preferred or self.default_provider
        candidates = self.enabled(capability)

        chain: List[BaseProvider] = []
        for descriptor in candidates:
            if descriptor.name == preferred:
                chain.append(descriptor.provider)
        for descriptor in sorted(candidates, key=lambda d: d.priority):
            if descriptor.provider not in chain:
                chain.append(descriptor.provider)
        return chain

    def describe(self) -> List[Dict]:
        """Descriptor summary for health reporting"""
        return [
            {
                "name": d.name,
                "capabilities": sorted(c.value for c in d.capabilities),
                "priority": d.priority,
                "enabled": d.enabled,
            }
            for d in self.descriptors
        ]

    @classmethod
    def from_providers(
        cls,
        providers: List[BaseProvider],
        default_provider: Optional[str] = None
    ) -> "ProviderRegistry":
        """Build a registry from already constructed providers, in list order"""
        descriptors = tuple(
            ProviderDescriptor(
                name=p.name,
                capabilities=p.capabilities,
                priority=i,
                enabled=True,
                provider=p
            )
            for i, p in enumerate(providers)
        )
        return cls(descriptors=descriptors, default_provider=default_provider)


def _openrouter(settings: Settings) -> BaseProvider:
    from learning_assistant.rag.providers.openai_compatible import OpenAICompatibleProvider
    return OpenAICompatibleProvider(
        name="openrouter",
        api_key=settings.OPENROUTER_API_KEY,
        chat_model=settings.OPENROUTER_MODEL,
        base_url=settings.OPENROUTER_BASE_URL,
        default_headers={
            "HTTP-Referer": settings.OPENROUTER_REFERER,
            "X-Title": settings.APP_NAME,
        }
    )


def _gemini(settings: Settings) -> BaseProvider:
    from learning_assistant.rag.providers.gemini import GeminiProvider
    return GeminiProvider(
        api_key=settings.GEMINI_API_KEY,
        chat_model=settings.GEMINI_MODEL,
        embedding_model=settings.GEMINI_EMBEDDING_MODEL
    )


def _groq(settings: Settings) -> BaseProvider:
    from learning_assistant.rag.providers.openai_compatible import OpenAICompatibleProvider
    return OpenAICompatibleProvider(
        name="groq",
        api_key=settings.GROQ_API_KEY,
        chat_model=settings.GROQ_MODEL,
        base_url=settings.GROQ_BASE_URL
    )


def _openai(settings: Settings) -> BaseProvider:
    from learning_assistant.rag.providers.openai_compatible import OpenAICompatibleProvider
    return OpenAICompatibleProvider(
        name="openai",
        api_key=settings.OPENAI_API_KEY,
        chat_model=settings.OPENAI_MODEL,
        embedding_model=settings.OPENAI_EMBEDDING_MODEL
    )


PROVIDER_FACTORIES: Dict[str, Tuple[str, Callable[[Settings], BaseProvider]]] = {
    "openrouter": ("OPENROUTER_API_KEY", _openrouter),
    "gemini": ("GEMINI_API_KEY", _gemini),
    "groq": ("GROQ_API_KEY", _groq),
    "openai": ("OPENAI_API_KEY", _openai),
}


def build_registry(settings: Settings) -> ProviderRegistry:
    """
    Build the provider registry from configured credentials

    Providers without a credential stay in the registry disabled.
    """
    descriptors = []
    for priority, name in enumerate(PROVIDER_PRIORITY):
        credential_field, factory = PROVIDER_FACTORIES[name]
        enabled = bool(getattr(settings, credential_field, ""))
        provider = factory(settings) if enabled else None
        descriptors.append(
            ProviderDescriptor(
                name=name,
                capabilities=PROVIDER_CAPABILITIES[name],
                priority=priority,
                enabled=enabled,
                provider=provider
            )
        )
        logger.info(f"Provider {name}: {'enabled' if enabled else 'disabled (no credential)'}")

    return ProviderRegistry(
        descriptors=tuple(descriptors),
        default_provider=settings.AI_PROVIDER.lower() if settings.AI_PROVIDER else None
    )
