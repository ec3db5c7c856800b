"""
LLM Provider Factory
"""
from django.conf import settings

from .base import LLMProvider
from .openai_provider import OpenAIProvider
from .anthropic_provider import AnthropicProvider


def parse_model_identifier(model_identifier: str) -> tuple[str, str]:
    """Split "provider:model"; a bare model name defaults to Anthropic."""
    if ':' in model_identifier:
        provider_name, model_name = model_identifier.split(':', 1)
        return provider_name, model_name
    return 'anthropic', model_identifier


def get_llm_provider(model_key: str = 'audit') -> LLMProvider:
    """
    Get the LLM provider configured for a task

    Args:
        model_key: Key into settings.AI_MODELS. Unknown keys fall back to
                   the 'audit' model.

    Returns:
        Initialized LLM provider instance

    Raises:
        ImproperlyConfigured: if the provider's API key is missing
        ValueError: if the provider name is unknown
    """
    from django.core.exceptions import ImproperlyConfigured

    model_identifier = settings.AI_MODELS.get(model_key, settings.AI_MODELS['audit'])
    provider_name, model_name = parse_model_identifier(model_identifier)

    if provider_name == 'anthropic':
        api_key = settings.ANTHROPIC_API_KEY
        provider_class = AnthropicProvider
    elif provider_name == 'openai':
        api_key = settings.OPENAI_API_KEY
        provider_class = OpenAIProvider
    else:
        raise ValueError(f"Unknown provider: {provider_name}")

    if not api_key:
        raise ImproperlyConfigured(
            f"{provider_name.capitalize()} API key not configured."
        )
    return provider_class(api_key=api_key, model=model_name)
