from providers.openai_provider import OpenAIProvider


OPENROUTER_MODELS = [
    "openai/gpt-4o-mini",
    "meta-llama/llama-3.3-70b-instruct",
]


class OpenRouterProvider(OpenAIProvider):
    """Provider for OpenRouter AI (OpenAI-compatible wire format)."""

    default_base_url = "https://openrouter.ai/api/v1"
    default_models = OPENROUTER_MODELS

    @property
    def name(self) -> str:
        return "openrouter"

    def _headers(self) -> dict:
        # OpenRouter has no organization/project headers
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        headers.update(self.extra_headers)
        return headers
