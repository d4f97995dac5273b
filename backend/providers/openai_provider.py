import httpx
from providers.base import BaseProvider


OPENAI_MODELS = [
    "gpt-4o-mini",
    "gpt-4o",
]


class OpenAIProvider(BaseProvider):
    """Provider for OpenAI and OpenAI-compatible chat completion APIs using httpx."""

    default_base_url = "https://api.openai.com/v1"
    default_models = OPENAI_MODELS

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        headers: dict | None = None,
        organization: str | None = None,
        project: str | None = None,
        extra_body: dict | None = None,
        **kwargs,
    ):
        super().__init__(api_key, base_url=base_url, headers=headers, **kwargs)
        self.organization = organization
        self.project = project
        self.extra_body = extra_body or {}

    @property
    def name(self) -> str:
        return "openai"

    @property
    def endpoint(self) -> str:
        return f"{(self.base_url or self.default_base_url).rstrip('/')}/chat/completions"

    def _headers(self) -> dict:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        if self.project:
            headers["OpenAI-Project"] = self.project
        headers.update(self.extra_headers)
        return headers

    def _body(self, messages, model, temperature, response_format) -> dict:
        body = {
            "model": model,
            "messages": messages,
        }
        if temperature is not None:
            body["temperature"] = temperature
        if response_format:
            body["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_format["name"],
                    "schema": response_format["schema"],
                },
            }
        body.update(self.extra_body)
        return body

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> dict:
        used_model = model or self.default_models[0]
        try:
            body = self._body(messages, used_model, temperature, response_format)

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.endpoint, headers=self._headers(), json=body)
                response.raise_for_status()
                data = response.json()
                text = data["choices"][0]["message"]["content"] if "choices" in data and data["choices"] else None

            return self._success(text, used_model)
        except httpx.TimeoutException:
            return self._failure(used_model, "Timeout")
        except Exception as e:
            return self._failure(used_model, str(e))
