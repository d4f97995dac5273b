"""Tests for LLM provider clients and structured output parsing."""

import json

import httpx
import pytest

from models.provider import Provider
from providers import (
    AnthropicProvider,
    BedrockProvider,
    GoogleProvider,
    OpenAIProvider,
    OpenRouterProvider,
    ProviderError,
    create_provider,
)
from schemas import MemoryExtractionOutput

EMPTY_RESULT = json.dumps({"new": [], "updates": [], "deletes": []})


@pytest.fixture
def mock_http(monkeypatch):
    """Route every httpx.AsyncClient through a handler and capture the requests."""
    requests = []
    state = {"handler": None}
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return state["handler"](request)

    def client_factory(*args, **kwargs):
        return real_client(*args, transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)

    def use(respond):
        state["handler"] = respond
        return requests

    return use


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_structured_request(self, mock_http):
        requests = mock_http(lambda r: httpx.Response(200, json={"choices": [{"message": {"content": EMPTY_RESULT}}]}))
        provider = OpenAIProvider(
            "sk-test",
            base_url="https://llm.internal/v1/",
            headers={"X-Team": "core"},
            organization="org-1",
            project="proj-1",
        )

        result = await provider.generate_object("extract", MemoryExtractionOutput, model="gpt-4o-mini", temperature=0.3)

        assert result == MemoryExtractionOutput()
        request = requests[0]
        assert str(request.url) == "https://llm.internal/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["OpenAI-Organization"] == "org-1"
        assert request.headers["OpenAI-Project"] == "proj-1"
        assert request.headers["X-Team"] == "core"
        body = json.loads(request.content)
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.3
        assert body["messages"] == [{"role": "user", "content": "extract"}]
        assert body["response_format"]["type"] == "json_schema"
        assert body["response_format"]["json_schema"]["name"] == "MemoryExtractionOutput"

    @pytest.mark.asyncio
    async def test_http_error_is_a_failed_result(self, mock_http):
        mock_http(lambda r: httpx.Response(401, json={"error": "bad key"}))

        result = await OpenAIProvider("sk-bad").chat([{"role": "user", "content": "hi"}], model="gpt-4o")

        assert result["status"] == "failed"
        assert result["text"] is None
        assert "401" in result["error"]

    @pytest.mark.asyncio
    async def test_generate_object_raises_on_failure(self, mock_http):
        mock_http(lambda r: httpx.Response(500, text="upstream exploded"))

        with pytest.raises(ProviderError):
            await OpenAIProvider("sk-test").generate_object("extract", MemoryExtractionOutput, model="gpt-4o")

    @pytest.mark.asyncio
    async def test_timeout(self, mock_http):
        def respond(request):
            raise httpx.ReadTimeout("slow", request=request)

        mock_http(respond)

        result = await OpenAIProvider("sk-test").chat([{"role": "user", "content": "hi"}])

        assert result["status"] == "failed"
        assert result["error"] == "Timeout"

    @pytest.mark.asyncio
    async def test_code_fenced_json_is_accepted(self, mock_http):
        fenced = "```json\n" + json.dumps({"deletes": ["m1"]}) + "\n```"
        mock_http(lambda r: httpx.Response(200, json={"choices": [{"message": {"content": fenced}}]}))

        result = await OpenAIProvider("sk-test").generate_object("extract", MemoryExtractionOutput)

        assert result.deletes == ["m1"]

    @pytest.mark.asyncio
    async def test_schema_mismatch_raises(self, mock_http):
        mock_http(lambda r: httpx.Response(200, json={"choices": [{"message": {"content": '{"new": "nope"}'}}]}))

        with pytest.raises(ProviderError, match="did not match"):
            await OpenAIProvider("sk-test").generate_object("extract", MemoryExtractionOutput)


class TestOtherProviders:
    @pytest.mark.asyncio
    async def test_openrouter_merges_extra_body(self, mock_http):
        requests = mock_http(lambda r: httpx.Response(200, json={"choices": [{"message": {"content": EMPTY_RESULT}}]}))

        await OpenRouterProvider("or-key", extra_body={"provider": {"sort": "price"}}).generate_object(
            "extract", MemoryExtractionOutput, model="openai/gpt-4o-mini"
        )

        assert str(requests[0].url) == "https://openrouter.ai/api/v1/chat/completions"
        assert json.loads(requests[0].content)["provider"] == {"sort": "price"}

    @pytest.mark.asyncio
    async def test_anthropic(self, mock_http):
        requests = mock_http(lambda r: httpx.Response(200, json={"content": [{"type": "text", "text": EMPTY_RESULT}]}))

        result = await AnthropicProvider("ant-key").generate_object(
            "extract", MemoryExtractionOutput, model="claude-3-5-haiku-latest", temperature=0.3
        )

        assert result == MemoryExtractionOutput()
        request = requests[0]
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "ant-key"
        body = json.loads(request.content)
        assert body["temperature"] == 0.3
        assert "JSON schema" in body["system"]
        assert body["messages"] == [{"role": "user", "content": "extract"}]

    @pytest.mark.asyncio
    async def test_google(self, mock_http):
        requests = mock_http(lambda r: httpx.Response(
            200, json={"candidates": [{"content": {"parts": [{"text": EMPTY_RESULT}]}}]}
        ))

        await GoogleProvider("g-key").generate_object(
            "extract", MemoryExtractionOutput, model="gemini-2.0-flash", temperature=0.3
        )

        request = requests[0]
        assert request.url.path.endswith("/models/gemini-2.0-flash:generateContent")
        assert request.headers["x-goog-api-key"] == "g-key"
        body = json.loads(request.content)
        assert body["generationConfig"] == {"temperature": 0.3, "responseMimeType": "application/json"}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "extract"}]}]

    @pytest.mark.asyncio
    async def test_bedrock(self, mock_http):
        requests = mock_http(lambda r: httpx.Response(
            200, json={"output": {"message": {"content": [{"text": EMPTY_RESULT}]}}}
        ))

        await BedrockProvider("br-key", region="eu-west-1").generate_object(
            "extract", MemoryExtractionOutput, model="anthropic.claude-3-5-haiku-20241022-v1:0"
        )

        request = requests[0]
        assert request.url.host == "bedrock-runtime.eu-west-1.amazonaws.com"
        assert request.url.raw_path.endswith(b"/converse")
        assert request.headers["Authorization"] == "Bearer br-key"


class TestCreateProvider:
    def make_row(self, provider_type: str, **kwargs) -> Provider:
        row = Provider(
            provider_type=provider_type,
            name="p",
            model_ids=[],
            task_model_id="m",
            memory_extraction_model_id="m",
            **kwargs,
        )
        row.api_key = "secret"
        return row

    @pytest.mark.parametrize(
        "provider_type,expected",
        [
            ("OpenAI", OpenAIProvider),
            ("OpenRouter", OpenRouterProvider),
            ("Anthropic", AnthropicProvider),
            ("Google", GoogleProvider),
            ("Bedrock", BedrockProvider),
        ],
    )
    def test_known_types(self, provider_type, expected):
        client = create_provider(self.make_row(provider_type))
        assert type(client) is expected
        assert client.api_key == "secret"

    def test_row_settings_are_passed_through(self):
        client = create_provider(self.make_row(
            "OpenAI", base_url="https://proxy/v1", headers={"X-A": "1"}, organization="org", project="proj",
        ))
        assert client.base_url == "https://proxy/v1"
        assert client.extra_headers == {"X-A": "1"}
        assert (client.organization, client.project) == ("org", "proj")

    def test_api_key_is_encrypted_at_rest(self):
        row = self.make_row("OpenAI")
        assert row.encrypted_api_key != "secret"
        assert row.api_key == "secret"

    def test_unknown_type(self):
        with pytest.raises(ProviderError, match="Unrecognized provider type 'Mistral'"):
            create_provider(self.make_row("Mistral"))
