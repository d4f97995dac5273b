from providers.base import BaseProvider, ProviderError
from providers.openai_provider import OpenAIProvider
from providers.openrouter_provider import OpenRouterProvider
from providers.anthropic_provider import AnthropicProvider
from providers.google_provider import GoogleProvider
from providers.bedrock_provider import BedrockProvider


def create_provider(provider) -> BaseProvider:
    """Build an LLM client from a stored Provider row.

    Raises ProviderError for provider types this backend does not know.
    """
    common = {
        "api_key": provider.api_key,
        "base_url": provider.base_url,
        "headers": provider.headers,
    }
    provider_type = provider.provider_type
    if provider_type == "OpenAI":
        return OpenAIProvider(
            organization=provider.organization,
            project=provider.project,
            **common,
        )
    if provider_type == "OpenRouter":
        return OpenRouterProvider(extra_body=provider.extra_body, **common)
    if provider_type == "Anthropic":
        return AnthropicProvider(**common)
    if provider_type == "Google":
        return GoogleProvider(**common)
    if provider_type == "Bedrock":
        return BedrockProvider(region=provider.region, **common)
    raise ProviderError(f"Unrecognized provider type '{provider_type}'")


__all__ = [
    "BaseProvider",
    "ProviderError",
    "OpenAIProvider",
    "OpenRouterProvider",
    "AnthropicProvider",
    "GoogleProvider",
    "BedrockProvider",
    "create_provider",
]
