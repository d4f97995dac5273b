from urllib.parse import quote

import httpx
from providers.base import BaseProvider


BEDROCK_MODELS = [
    "anthropic.claude-3-5-haiku-20241022-v1:0",
]


class BedrockProvider(BaseProvider):
    """Provider for Amazon Bedrock's Converse API, authenticated with a Bedrock API key."""

    def __init__(self, api_key: str, region: str | None = None, **kwargs):
        super().__init__(api_key, **kwargs)
        self.region = region or "us-east-1"

    @property
    def name(self) -> str:
        return "bedrock"

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> dict:
        used_model = model or BEDROCK_MODELS[0]
        base_url = self.base_url or f"https://bedrock-runtime.{self.region}.amazonaws.com"
        endpoint = f"{base_url.rstrip('/')}/model/{quote(used_model, safe='')}/converse"
        try:
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
            headers.update(self.extra_headers)

            system_parts = [m["content"] for m in messages if m["role"] == "system"]
            schema_instruction = self._schema_instruction(response_format)
            if schema_instruction:
                system_parts.append(schema_instruction)

            body = {
                "messages": [
                    {"role": m["role"], "content": [{"text": m["content"]}]}
                    for m in messages
                    if m["role"] != "system"
                ],
            }
            if system_parts:
                body["system"] = [{"text": part} for part in system_parts]
            if temperature is not None:
                body["inferenceConfig"] = {"temperature": temperature}

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(endpoint, headers=headers, json=body)
                response.raise_for_status()
                data = response.json()
                blocks = data.get("output", {}).get("message", {}).get("content", [])
                text = "".join(b.get("text", "") for b in blocks) or None

            return self._success(text, used_model)
        except httpx.TimeoutException:
            return self._failure(used_model, "Timeout")
        except Exception as e:
            return self._failure(used_model, str(e))
