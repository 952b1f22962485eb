"""
Generative AI provider wrapper.

Everything that talks to the language model goes through ``LLMProvider`` so
the enrichment, streaming and analysis services can be tested with a fake.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, Optional, Protocol

from openai import AsyncOpenAI

from wisdom.config import Settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def complete(self, prompt: str) -> str: ...

    def stream(self, prompt: str) -> AsyncIterator[str]: ...


class LLMProvider:
    """Chat-completions client for single-shot and streamed answers."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        max_tokens: int = 800,
    ):
        self._client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(self, prompt: str) -> str:
        """
        Run a single prompt and return the full text answer.

        Args:
            prompt: User prompt

        Returns:
            Stripped answer text ("" if the model returned nothing)
        """
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return (response.choices[0].message.content or "").strip()

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield answer text deltas in the order the provider emits them."""
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.7,
            max_tokens=self.max_tokens,
            stream=True,
        )
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        finally:
            # Release the HTTP response even when the consumer stops early
            await response.close()


def build_llm_provider(settings: Settings) -> Optional[LLMProvider]:
    """Create the provider, or return None when no API key is configured."""
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set; AI features will be skipped.")
        return None

    client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
    logger.info("OpenAI client initialized (model=%s)", settings.OPENAI_MODEL)
    return LLMProvider(client, model=settings.OPENAI_MODEL)
