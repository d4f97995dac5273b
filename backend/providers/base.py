import json
from abc import ABC, abstractmethod

from pydantic import BaseModel, ValidationError

from config import LLM_TIMEOUT_SECONDS


class ProviderError(Exception):
    """Raised when a provider call fails or its output cannot be used."""


class BaseProvider(ABC):
    """Abstract base class for all AI providers."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        headers: dict | None = None,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.extra_headers = headers or {}
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """The name of this provider (e.g. 'openai', 'anthropic')."""
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float | None = None,
        response_format: dict | None = None,
    ) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.
            model: Optional model identifier. Provider uses its default if None.
            temperature: Optional sampling temperature.
            response_format: Optional {"name": str, "schema": dict} JSON schema the
                reply must follow.

        Returns:
            dict with keys:
                - text: str | None  — the generated text
                - provider: str     — provider name
                - model: str        — model used
                - status: "success" | "failed"
                - error: str | None — error message on failure
        """
        ...

    async def generate_object(
        self,
        prompt: str,
        schema: type[BaseModel],
        model: str | None = None,
        temperature: float | None = None,
    ) -> BaseModel:
        """Run a single prompt and parse the reply into *schema*.

        Raises ProviderError if the call fails or the reply does not validate.
        """
        response_format = {
            "name": schema.__name__,
            "schema": schema.model_json_schema(),
        }
        result = await self.chat(
            [{"role": "user", "content": prompt}],
            model=model,
            temperature=temperature,
            response_format=response_format,
        )
        if result.get("status") != "success":
            raise ProviderError(f"{self.name}: {result.get('error') or 'request failed'}")

        text = result.get("text")
        if not text:
            raise ProviderError(f"{self.name}: empty response")

        try:
            return schema.model_validate_json(_strip_code_fence(text))
        except ValidationError as e:
            raise ProviderError(f"{self.name}: response did not match {schema.__name__}: {e}") from e

    # ------------------------------------------------------------------
    def _success(self, text: str | None, model: str) -> dict:
        return {
            "text": text,
            "provider": self.name,
            "model": model,
            "status": "success",
            "error": None,
        }

    def _failure(self, model: str, error: str) -> dict:
        return {
            "text": None,
            "provider": self.name,
            "model": model,
            "status": "failed",
            "error": error,
        }

    @staticmethod
    def _schema_instruction(response_format: dict | None) -> str | None:
        """System text for providers without native JSON-schema output."""
        if not response_format:
            return None
        return (
            "Respond ONLY with a JSON object that validates against this JSON schema, "
            "with no surrounding prose:\n" + json.dumps(response_format["schema"])
        )


def _strip_code_fence(text: str) -> str:
    """The model might wrap its JSON in a markdown code block."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped
    lines = [line for line in stripped.split("\n") if not line.startswith("```")]
    return "\n".join(lines)
