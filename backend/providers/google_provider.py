import httpx
from providers.base import BaseProvider


GOOGLE_MODELS = [
    "gemini-2.0-flash",
    "gemini-1.5-flash",
]


class GoogleProvider(BaseProvider):
    """Provider for Google Gemini via the Generative Language REST API."""

    default_base_url = "https://generativelanguage.googleapis.com/v1beta"

    @property
    def name(self) -> str:
        return "google"

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> dict:
        used_model = model or GOOGLE_MODELS[0]
        endpoint = f"{(self.base_url or self.default_base_url).rstrip('/')}/models/{used_model}:generateContent"
        try:
            headers = {
                "x-goog-api-key": self.api_key,
                "Content-Type": "application/json",
            }
            headers.update(self.extra_headers)

            # Gemini calls the assistant role "model"; system text goes in systemInstruction
            system_parts = [m["content"] for m in messages if m["role"] == "system"]
            schema_instruction = self._schema_instruction(response_format)
            if schema_instruction:
                system_parts.append(schema_instruction)
            contents = [
                {
                    "role": "model" if m["role"] == "assistant" else "user",
                    "parts": [{"text": m["content"]}],
                }
                for m in messages
                if m["role"] != "system"
            ]

            generation_config = {}
            if temperature is not None:
                generation_config["temperature"] = temperature
            if response_format:
                generation_config["responseMimeType"] = "application/json"

            body = {"contents": contents}
            if system_parts:
                body["systemInstruction"] = {"parts": [{"text": "\n\n".join(system_parts)}]}
            if generation_config:
                body["generationConfig"] = generation_config

            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(endpoint, headers=headers, json=body)
                response.raise_for_status()
                data = response.json()
                text = None
                candidates = data.get("candidates") or []
                if candidates:
                    parts = candidates[0].get("content", {}).get("parts", [])
                    text = "".join(p.get("text", "") for p in parts) or None

            return self._success(text, used_model)
        except httpx.TimeoutException:
            return self._failure(used_model, "Timeout")
        except Exception as e:
            return self._failure(used_model, str(e))
