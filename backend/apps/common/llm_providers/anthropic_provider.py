"""
Anthropic (Claude) LLM Provider
"""
from typing import Optional
from anthropic import AsyncAnthropic

from .base import LLMProvider


class AnthropicProvider(LLMProvider):
    """Anthropic Claude implementation of LLM provider"""

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-latest"):
        super().__init__(api_key, model)
        self.client = AsyncAnthropic(api_key=api_key, max_retries=self.MAX_RETRIES)

    async def generate(
        self,
        messages: list[dict],
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs
    ) -> str:
        """
        Non-streaming chat completion from Anthropic.

        Joins every text block of the response; tool-use and other
        non-text blocks are ignored.
        """
        if not messages:
            raise ValueError("At least one message is required")

        response = await self.client.messages.create(
            model=model or self.model,
            messages=messages,
            system=system_prompt or "",
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs
        )

        return "".join(
            block.text for block in (response.content or [])
            if getattr(block, "type", None) == "text"
        )
