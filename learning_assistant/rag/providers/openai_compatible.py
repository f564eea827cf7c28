"""OpenAI-compatible providers (OpenAI, Groq, OpenRouter)"""

from typing import Dict, FrozenSet, List, Optional
import logging

from openai import AsyncOpenAI

from learning_assistant.rag.providers.base import (
    BaseProvider,
    Capability,
    ChatPreferences,
    ChatResult,
    EmbeddingResult,
)
from learning_assistant.rag.tokens import count_messages_tokens, count_tokens

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(BaseProvider):
    """Provider speaking the OpenAI chat/embeddings API"""

    def __init__(
        self,
        name: str,
        api_key: str,
        chat_model: str,
        embedding_model: Optional[str] = None,
        base_url: Optional[str] = None,
        default_headers: Optional[Dict[str, str]] = None
    ):
        self.name = name
        self.chat_model = chat_model
        self.embedding_model = embedding_model
        # Retries are handled by the orchestrator's backoff policy
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=default_headers,
            max_retries=0
        )

        capabilities = {Capability.CHAT}
        if embedding_model:
            capabilities.add(Capability.EMBEDDING)
        self.capabilities: FrozenSet[Capability] = frozenset(capabilities)

    async def chat(
        self,
        messages: List[Dict[str, str]],
        system_instruction: str,
        preferences: ChatPreferences
    ) -> ChatResult:
        """
        Generate a chat completion

        Args:
            messages: List of message dicts with 'role' and 'content'
            system_instruction: System message prepended to the conversation
            preferences: Model, temperature and token limits

        Returns:
            Normalized chat result
        """
        formatted_messages = [{"role": "system", "content": system_instruction}, *messages]
        model = preferences.model or self.chat_model

        response = await self.client.chat.completions.create(
            model=model,
            messages=formatted_messages,
            temperature=preferences.temperature,
            max_tokens=preferences.max_tokens
        )

        text = response.choices[0].message.content or ""
        usage = response.usage
        if usage and usage.total_tokens:
            tokens = usage.total_tokens
        else:
            tokens = count_messages_tokens(formatted_messages) + count_tokens(text)

        logger.debug(f"{self.name} generated {len(text)} chars, {tokens} tokens")
        return ChatResult(
            text=text,
            token_estimate=tokens,
            model_name=response.model or model,
            provider=self.name
        )

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate an embedding for a single text"""
        if not self.embedding_model:
            raise NotImplementedError(f"{self.name} does not support embeddings")

        response = await self.client.embeddings.create(
            model=self.embedding_model,
            input=text
        )
        usage = response.usage
        tokens = usage.total_tokens if usage and usage.total_tokens else count_tokens(text)

        return EmbeddingResult(
            vector=list(response.data[0].embedding),
            token_estimate=tokens,
            model_name=response.model or self.embedding_model,
            provider=self.name
        )
