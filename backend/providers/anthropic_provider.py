import httpx
from providers.base import BaseProvider


ANTHROPIC_MODELS = [
    "claude-3-5-haiku-latest",
]

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(BaseProvider):
    """Provider for the Anthropic Messages API using httpx."""

    default_base_url = "https://api.anthropic.com/v1"

    def __init__(self, api_key: str, max_tokens: int = 4096, **kwargs):
        super().__init__(api_key, **kwargs)
        self.max_tokens = max_tokens

    @property
    def name(self) -> str:
        return "anthropic"

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> dict:
        used_model = model or ANTHROPIC_MODELS[0]
        endpoint = f"{(self.base_url or self.default_base_url).rstrip('/')}/messages"
        try:
            headers = {
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            }
            headers.update(self.extra_headers)

            system_parts = [m["content"] for m in messages if m["role"] == "system"]
            schema_instruction = self._schema_instruction(response_format)
            if schema_instruction:
                system_parts.append(schema_instruction)

            body = {
                "model": used_model,
                "max_tokens": self.max_tokens,
                "messages": [m for m in messages if m["role"] != "system"],
            }
            if system_parts:
                body["system"] = "\n\n".join(system_parts)
            if temperature is not None:
                body["temperature"] = temperature

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(endpoint, headers=headers, json=body)
                response.raise_for_status()
                data = response.json()
                text = "".join(
                    block.get("text", "") for block in data.get("content", []) if block.get("type") == "text"
                ) or None

            return self._success(text, used_model)
        except httpx.TimeoutException:
            return self._failure(used_model, "Timeout")
        except Exception as e:
            return self._failure(used_model, str(e))
