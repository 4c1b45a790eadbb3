import asyncio
import json

import google.auth.exceptions
import httpx
import pytest

from metamorphosis_api.credentials import resolve_credentials
from metamorphosis_api.errors import ProviderCallError, ProviderResponseError
from metamorphosis_api.providers.vertex import VertexAIProvider

from .conftest import PROJECT_ID, make_settings, text_response

ROOT = "https://us-central1-aiplatform.googleapis.com/v1"


def make_provider(handler, token_source=lambda: "test-token", timeout=5):
    return VertexAIProvider(
        credentials=resolve_credentials(make_settings()),
        location="us-central1",
        root_url=ROOT,
        timeout=timeout,
        token_source=token_source,
        transport=httpx.MockTransport(handler),
    )


def test_endpoint_for_model():
    provider = make_provider(lambda request: httpx.Response(200, json={}))
    assert provider.endpoint_for("gemini-2.5-flash") == (
        f"{ROOT}/projects/{PROJECT_ID}/locations/us-central1/publishers/google/models/gemini-2.5-flash:generateContent"
    )


def test_generate_content_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["authorization"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=text_response("hello"))

    provider = make_provider(handler)
    contents = [{"role": "user", "parts": [{"text": "Q"}]}]

    result = asyncio.run(provider.generate_content("gemini-x", contents, system_instruction="S"))

    assert result == text_response("hello")
    assert seen["method"] == "POST"
    assert seen["url"].endswith("/publishers/google/models/gemini-x:generateContent")
    assert seen["authorization"] == "Bearer test-token"
    assert seen["body"] == {
        "contents": contents,
        "systemInstruction": {"parts": [{"text": "S"}]},
    }


def test_generation_config_is_forwarded():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": []})

    provider = make_provider(handler)
    contents = [{"role": "user", "parts": [{"text": "P"}]}]

    asyncio.run(provider.generate_content("imagen", contents, generation_config={"responseModalities": ["IMAGE"]}))

    assert seen["body"] == {"contents": contents, "generationConfig": {"responseModalities": ["IMAGE"]}}


def test_upstream_error_message_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            429,
            json={"error": {"code": 429, "message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED"}},
        )

    with pytest.raises(ProviderCallError) as exc_info:
        asyncio.run(make_provider(handler).generate_content("gemini-x", []))

    assert exc_info.value.message == "API Error: [429] Resource exhausted"
    assert exc_info.value.status_code == 500


def test_upstream_error_without_json_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad gateway</html>")

    with pytest.raises(ProviderCallError) as exc_info:
        asyncio.run(make_provider(handler).generate_content("gemini-x", []))

    assert exc_info.value.message == "API Error: Upstream API error: 502"


def test_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderCallError) as exc_info:
        asyncio.run(make_provider(handler, timeout=5).generate_content("gemini-x", []))

    assert exc_info.value.message == "API Error: Request timeout (5s)"


def test_connection_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ProviderCallError) as exc_info:
        asyncio.run(make_provider(handler).generate_content("gemini-x", []))

    assert exc_info.value.message == "API Error: Vertex AI request failed: connection refused"


def test_non_json_success_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="ok")

    with pytest.raises(ProviderResponseError):
        asyncio.run(make_provider(handler).generate_content("gemini-x", []))


@pytest.mark.parametrize(
    "error",
    [google.auth.exceptions.RefreshError("invalid_grant"), ValueError("Could not deserialize key data")],
)
def test_token_failure(error):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    def token_source():
        raise error

    with pytest.raises(ProviderCallError) as exc_info:
        asyncio.run(make_provider(handler, token_source=token_source).generate_content("gemini-x", []))

    assert exc_info.value.message.startswith("API Error: Failed to obtain access token: ")
    assert calls == []
