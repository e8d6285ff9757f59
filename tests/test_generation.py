import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.domain.generation.service import build_prompt, generate
from app.shared.errors import GenerationError, ValidationError


def run_generate(prompt, handler):
    async def _run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await generate(prompt, client=client)

    return asyncio.run(_run())


def test_build_prompt_from_questionnaire():
    assert build_prompt("wolf", "Neo-Traditional", "forearm", "Black and Grey") == (
        "Create a black and grey tattoo design of a wolf in Neo-Traditional style, "
        "designed to be placed on the forearm. The design should be detailed and suitable "
        "for a tattoo, with clean lines and proper contrast."
    )
    with pytest.raises(ValidationError):
        build_prompt("wolf", "", "forearm", "Color")


def test_generate_posts_prompt_and_returns_url():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"data": [{"url": "https://images.example/1.png"}]})

    assert run_generate("  a koi fish  ", handler) == "https://images.example/1.png"
    assert seen["body"] == {"prompt": "a koi fish", "n": 1, "size": "512x512"}
    assert seen["auth"] == "Bearer test-openai-key"


def test_empty_prompt_never_calls_provider():
    def handler(request):
        raise AssertionError("provider must not be called")

    with pytest.raises(ValidationError, match="Please enter a description for your tattoo."):
        run_generate("   ", handler)


def test_provider_message_is_passed_through():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Your request was rejected by the safety system."}})

    with pytest.raises(GenerationError) as exc_info:
        run_generate("skull", handler)
    assert exc_info.value.message == "Your request was rejected by the safety system."
    assert exc_info.value.status_code == 502


def test_provider_error_without_message():
    with pytest.raises(GenerationError, match="Failed to generate image"):
        run_generate("skull", lambda request: httpx.Response(500, text="upstream down"))


def test_missing_url():
    with pytest.raises(GenerationError, match="No image URL received from the API"):
        run_generate("skull", lambda request: httpx.Response(200, json={"data": []}))


def test_network_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GenerationError, match="Failed to generate image"):
        run_generate("skull", handler)


def test_http_generate_is_rate_limited(api, login, client_user):
    login(client_user)
    with patch("app.domain.generation.router.generate", new_callable=AsyncMock) as gen:
        gen.return_value = "https://images.example/2.png"
        responses = [
            api.post("/generate", json={"subject": "owl", "style": "Dotwork", "placement": "back", "color": "Black"})
            for _ in range(6)
        ]

    assert [r.status_code for r in responses] == [200] * 5 + [429]
    assert responses[0].json()["imageUrl"] == "https://images.example/2.png"
    assert responses[0].json()["prompt"].startswith("Create a black tattoo design of a owl in Dotwork style")
    assert "Retry-After" in responses[-1].headers


def test_http_generate_empty_request(api, login, client_user):
    login(client_user)
    response = api.post("/generate", json={})
    assert response.status_code == 422
    assert response.json()["detail"] == "Please enter a description for your tattoo."
