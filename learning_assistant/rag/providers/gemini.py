"""Google Gemini provider"""

from typing import Dict, List
import logging
import math

import google.generativeai as genai

from learning_assistant.rag.providers.base import (
    BaseProvider,
    Capability,
    ChatPreferences,
    ChatResult,
    EmbeddingResult,
)

logger = logging.getLogger(__name__)


class GeminiProvider(BaseProvider):
    """Gemini-based chat and embeddings"""

    name = "gemini"
    capabilities = frozenset({Capability.CHAT, Capability.EMBEDDING})

    def __init__(self, api_key: str, chat_model: str, embedding_model: str):
        # Configure Gemini
        genai.configure(api_key=api_key)
        self.chat_model = chat_model

        # Ensure embedding model has "models/" prefix
        if not embedding_model.startswith("models/"):
            embedding_model = f"models/{embedding_model}"
        self.embedding_model = embedding_model

        logger.info(f"Initializing Gemini with model {self.chat_model}, embeddings {self.embedding_model}")

    def _convert_messages_to_gemini_format(self, messages: List[Dict[str, str]]) -> List[Dict]:
        """
        Convert OpenAI-style messages to Gemini chat contents

        System messages are dropped here; the system instruction is passed
        to the model separately.
        """
        contents = []
        for msg in messages:
            role = msg.get("role", "user")
            content = msg.get("content", "")

            if role == "user":
                contents.append({"role": "user", "parts": [content]})
            elif role == "assistant":
                contents.append({"role": "model", "parts": [content]})

        return contents

    async def chat(
        self,
        messages: List[Dict[str, str]],
        system_instruction: str,
        preferences: ChatPreferences
    ) -> ChatResult:
        """Generate a chat completion with Gemini"""
        contents = self._convert_messages_to_gemini_format(messages)
        if not contents:
            raise ValueError("No user message found in messages")

        model_name = preferences.model or self.chat_model
        generation_config = genai.GenerationConfig(
            temperature=preferences.temperature,
            max_output_tokens=preferences.max_tokens,
        )
        model = genai.GenerativeModel(
            model_name=model_name,
            generation_config=generation_config,
            system_instruction=system_instruction or None
        )

        response = await model.generate_content_async(contents)
        text = response.text

        usage = getattr(response, "usage_metadata", None)
        tokens = getattr(usage, "total_token_count", 0) if usage else 0
        if not tokens:
            # Rough estimate: 1 token ≈ 4 characters
            tokens = len(text) // 4

        logger.debug(f"Gemini generated {len(text)} chars, {tokens} tokens")
        return ChatResult(
            text=text,
            token_estimate=tokens,
            model_name=model_name,
            provider=self.name
        )

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate an embedding for a single text using Gemini"""
        result = await genai.embed_content_async(
            model=self.embedding_model,
            content=text,
            task_type="retrieval_document"
        )

        return EmbeddingResult(
            vector=list(result["embedding"]),
            token_estimate=math.ceil(len(text) / 4),
            model_name=self.embedding_model.replace("models/", ""),
            provider=self.name
        )
