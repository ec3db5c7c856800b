"""
OpenAI LLM Provider
"""
from typing import Optional
from openai import AsyncOpenAI

from .base import LLMProvider


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider"""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        super().__init__(api_key, model)
        self.client = AsyncOpenAI(api_key=api_key, max_retries=self.MAX_RETRIES)

    @staticmethod
    def _with_system(messages: list[dict], system_prompt: Optional[str]) -> list[dict]:
        openai_messages = []
        if system_prompt:
            openai_messages.append({"role": "system", "content": system_prompt})
        openai_messages.extend(messages)
        return openai_messages

    async def generate(
        self,
        messages: list[dict],
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        **kwargs
    ) -> str:
        """Non-streaming chat completion from OpenAI."""
        if not messages:
            raise ValueError("At least one message is required")

        response = await self.client.chat.completions.create(
            model=model or self.model,
            messages=self._with_system(messages, system_prompt),
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs
        )

        if response.choices and response.choices[0].message.content:
            return response.choices[0].message.content
        return ""
