"""
LLM Provider abstraction for seamless provider switching
"""
from .base import LLMProvider
from .factory import get_llm_provider, parse_model_identifier
from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider
from .utils import extract_brace_span, strip_markdown_fences

__all__ = [
    'LLMProvider',
    'get_llm_provider',
    'parse_model_identifier',
    'OpenAIProvider',
    'AnthropicProvider',
    'extract_brace_span',
    'strip_markdown_fences',
]
