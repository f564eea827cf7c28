"""Provider fallback orchestrator"""

from typing import Dict, List, Optional, Union
import logging

from learning_assistant.exceptions import (
    AllProvidersFailedError,
    ConfigurationError,
    ProviderError,
    QuotaExceededError,
    TransientUpstreamError,
)
from learning_assistant.rag.backoff import RetryPolicy, call_with_retry
from learning_assistant.rag.embedding_cache import EmbeddingCache
from learning_assistant.rag.error_classifier import ErrorClass, classify_error
from learning_assistant.rag.prompt_templates import build_system_message
from learning_assistant.rag.providers.base import (
    BaseProvider,
    Capability,
    ChatPreferences,
    ChatResult,
    EmbeddingResult,
    HybridSignal,
)
from learning_assistant.rag.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


def _wrap_error(provider: BaseProvider, err: Exception) -> ProviderError:
    """Map a raw SDK exception onto the provider error taxonomy"""
    if isinstance(err, ProviderError):
        return err
    error_class = classify_error(err)
    message = f"{provider.name}: {err}"
    if error_class == ErrorClass.QUOTA:
        wrapped = QuotaExceededError(message, provider=provider.name)
    elif error_class == ErrorClass.TRANSIENT:
        wrapped = TransientUpstreamError(message, provider=provider.name)
    else:
        wrapped = ProviderError(message, provider=provider.name)
    wrapped.__cause__ = err
    return wrapped


class ProviderOrchestrator:
    """
    Routes chat and embedding calls through an ordered provider chain

    Holds no mutable state besides the immutable registry and retry policy,
    so a single instance can serve concurrent callers.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        retry_policy: Optional[RetryPolicy] = None,
        cache: Optional[EmbeddingCache] = None
    ):
        self.registry = registry
        self.retry_policy = retry_policy or RetryPolicy()
        self.cache = cache

    def can_embed(self) -> bool:
        return self.registry.has_capability(Capability.EMBEDDING)

    def can_chat(self) -> bool:
        return self.registry.has_capability(Capability.CHAT)

    async def chat_complete(
        self,
        messages: List[Dict[str, str]],
        grounding_context: str = "",
        preferences: Optional[ChatPreferences] = None
    ) -> ChatResult:
        """
        Generate a chat completion, falling back across providers

        Args:
            messages: Conversation turns with 'role' and 'content'
            grounding_context: Course context used as the system instruction
            preferences: Preferred provider, model, temperature, token limit

        Returns:
            ChatResult from the first provider that succeeds
        """
        preferences = preferences or ChatPreferences()
        preferred = preferences.provider or self.registry.default_provider
        chain = self.registry.chain_for(Capability.CHAT, preferred)
        if not chain:
            raise ConfigurationError("No AI provider API keys configured")

        system_instruction = build_system_message(grounding_context)

        async def attempt(provider: BaseProvider) -> ChatResult:
            return await call_with_retry(
                lambda: provider.chat(messages, system_instruction, preferences),
                self.retry_policy,
                label=f"{provider.name} chat"
            )

        return await self._run_chain(chain, preferred, attempt, "chat")

    async def embed(self, text: str) -> Union[EmbeddingResult, HybridSignal]:
        """
        Generate an embedding, falling back across embedding providers

        Returns HybridSignal instead of raising when no embedding provider
        is usable but a chat provider is, so callers can switch to
        text-based relevance matching.

        Args:
            text: Text to embed

        Returns:
            EmbeddingResult or HybridSignal
        """
        chain = self.registry.chain_for(Capability.EMBEDDING)
        if not chain:
            if self.can_chat():
                logger.warning("No embedding providers available, signalling hybrid mode")
                return HybridSignal("no embedding provider configured")
            raise ConfigurationError(
                "No API key configured for embedding providers (Gemini or OpenAI required)"
            )

        async def attempt(provider: BaseProvider) -> EmbeddingResult:
            if self.cache is not None:
                cached = self.cache.get(provider.name, text)
                if cached:
                    return EmbeddingResult(
                        vector=cached,
                        token_estimate=0,
                        model_name="cache",
                        provider=provider.name
                    )
            result = await call_with_retry(
                lambda: provider.embed(text),
                self.retry_policy,
                label=f"{provider.name} embedding"
            )
            if self.cache is not None:
                self.cache.set(provider.name, text, result.vector)
            return result

        try:
            return await self._run_chain(chain, chain[0].name, attempt, "embedding")
        except AllProvidersFailedError as e:
            if e.is_quota and self.can_chat():
                logger.warning("All embedding providers exhausted, signalling hybrid mode")
                return HybridSignal("embedding quota exhausted")
            raise

    async def _run_chain(self, chain, preferred, attempt, kind: str):
        errors: List[ProviderError] = []
        logger.debug(f"{kind} chain: {[p.name for p in chain]}")

        for position, provider in enumerate(chain):
            is_last = position == len(chain) - 1
            try:
                result = await attempt(provider)
            except Exception as e:
                error = _wrap_error(provider, e)
                errors.append(error)
                if isinstance(error, QuotaExceededError):
                    logger.warning(f"{provider.name} quota exceeded for {kind}, trying next provider...")
                elif not is_last:
                    logger.warning(f"{provider.name} {kind} error, trying next provider: {e}")
                else:
                    logger.error(f"AI Service Error ({provider.name}, {kind}): {e}")
                continue

            if provider.name != preferred:
                logger.info(f"Fallback successful: Using {provider.name} instead of {preferred} for {kind}")
                return result.as_fallback()
            return result

        last = errors[-1] if errors else None
        raise AllProvidersFailedError(
            f"All AI providers failed for {kind}: {last}",
            errors=errors
        ) from last
