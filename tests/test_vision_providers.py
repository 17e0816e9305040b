"""Tests for the vision backends' request shapes and error mapping."""

import base64
import json

import httpx
import pytest

from calorie_api.core.config import Settings, VisionProvider
from calorie_api.models.analysis import CorrectionContext
from calorie_api.services.vision import (
    AnthropicVisionService,
    FixtureVisionService,
    OpenAIVisionService,
    UnavailableVisionService,
    VisionAnalysisError,
    build_vision_service,
    coerce_media_type,
    extract_analysis,
)
from calorie_api.services.vision.prompts import (
    CLAUDE_IMAGE_SCHEMA,
    DESCRIPTION_SCHEMA,
    GPT_IMAGE_SCHEMA,
)

from conftest import TINY_PNG_BYTES, make_image


def mock_client(handler, requests: list[httpx.Request]) -> httpx.AsyncClient:
    """AsyncClient whose transport records requests and answers via `handler`."""

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(record))


def claude_response(text: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={"content": [{"type": "text", "text": text}], "stop_reason": "end_turn"},
    )


def openai_response(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


class TestMediaType:
    """Tests for coerce_media_type."""

    @pytest.mark.parametrize(
        "mime_type,expected",
        [
            ("image/png", "image/png"),
            ("image/jpeg", "image/jpeg"),
            ("image/jpg", "image/jpeg"),
            ("image/webp", "image/webp"),
            ("image/gif", "image/gif"),
            ("image/heic", "image/jpeg"),
            ("image/bmp", "image/jpeg"),
            (None, "image/jpeg"),
        ],
    )
    def test_coerce(self, mime_type, expected):
        assert coerce_media_type(mime_type) == expected


class TestAnthropicVisionService:
    """Tests for AnthropicVisionService."""

    @pytest.mark.asyncio
    async def test_image_request_shape(self):
        requests: list[httpx.Request] = []
        service = AnthropicVisionService(
            api_key="sk-ant-test",
            model="claude-test",
            client=mock_client(lambda r: claude_response('{"title": "Toast"}'), requests),
        )

        reply = await service.describe_image(TINY_PNG_BYTES, "image/png")

        assert reply.text == '{"title": "Toast"}'
        assert reply.schema == CLAUDE_IMAGE_SCHEMA
        assert reply.provider == "anthropic/claude-test"

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.anthropic.com/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["anthropic-version"] == "2023-06-01"

        body = json.loads(request.content)
        assert body["model"] == "claude-test"
        assert body["max_tokens"] == 1000
        assert "food analysis assistant" in body["system"]
        image_block, text_block = body["messages"][0]["content"]
        assert image_block["source"] == {
            "type": "base64",
            "media_type": "image/png",
            "data": base64.b64encode(TINY_PNG_BYTES).decode(),
        }
        assert "healthRating" in text_block["text"]

    @pytest.mark.asyncio
    async def test_correction_changes_prompt(self):
        requests: list[httpx.Request] = []
        service = AnthropicVisionService(
            api_key="key",
            client=mock_client(lambda r: claude_response("{}"), requests),
        )

        await service.describe_image(
            TINY_PNG_BYTES,
            "image/heic",
            correction=CorrectionContext(
                previous_result="Pizza, 285 kcal",
                correction_text="It was a calzone",
            ),
        )

        body = json.loads(requests[0].content)
        image_block, text_block = body["messages"][0]["content"]
        assert image_block["source"]["media_type"] == "image/jpeg"
        assert "Previous analysis result: Pizza, 285 kcal" in text_block["text"]
        assert "User correction: It was a calzone" in text_block["text"]

    @pytest.mark.asyncio
    async def test_text_request_uses_description_schema(self):
        requests: list[httpx.Request] = []
        service = AnthropicVisionService(
            api_key="key",
            client=mock_client(lambda r: claude_response("{}"), requests),
        )

        reply = await service.describe_text("two eggs and toast")

        assert reply.schema == DESCRIPTION_SCHEMA
        body = json.loads(requests[0].content)
        assert 'Meal to analyze: "two eggs and toast"' in body["messages"][0]["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_http_error_is_vendor_error(self):
        service = AnthropicVisionService(
            api_key="key",
            client=mock_client(lambda r: httpx.Response(529, text="overloaded"), []),
        )

        with pytest.raises(VisionAnalysisError) as exc_info:
            await service.describe_image(TINY_PNG_BYTES, "image/png")

        assert exc_info.value.error_code == "VENDOR_ERROR"
        assert exc_info.value.details["status_code"] == 529

    @pytest.mark.asyncio
    async def test_missing_text_block_is_vendor_error(self):
        service = AnthropicVisionService(
            api_key="key",
            client=mock_client(
                lambda r: httpx.Response(200, json={"content": [{"type": "tool_use"}]}), []
            ),
        )

        with pytest.raises(VisionAnalysisError) as exc_info:
            await service.describe_image(TINY_PNG_BYTES, "image/png")

        assert exc_info.value.error_code == "VENDOR_ERROR"

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        service = AnthropicVisionService(api_key="key", client=mock_client(refuse, []))

        with pytest.raises(VisionAnalysisError) as exc_info:
            await service.describe_image(TINY_PNG_BYTES, "image/png")

        assert exc_info.value.error_code == "CONNECTION_ERROR"


class TestOpenAIVisionService:
    """Tests for OpenAIVisionService."""

    @pytest.mark.asyncio
    async def test_image_request_shape(self):
        requests: list[httpx.Request] = []
        service = OpenAIVisionService(
            api_key="sk-test",
            vision_model="gpt-vision",
            client=mock_client(lambda r: openai_response('{"name": "Soup"}'), requests),
        )

        reply = await service.describe_image(TINY_PNG_BYTES, "image/png")

        assert reply.text == '{"name": "Soup"}'
        assert reply.schema == GPT_IMAGE_SCHEMA

        request = requests[0]
        assert str(request.url) == "https://api.openai.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "gpt-vision"
        system, user = body["messages"]
        assert system["role"] == "system"
        assert "Health score (1-10)" in system["content"]
        image_part = user["content"][1]
        assert image_part["type"] == "image_url"
        assert image_part["image_url"]["url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_text_request_options(self):
        requests: list[httpx.Request] = []
        service = OpenAIVisionService(
            api_key="sk-test",
            text_model="gpt-text",
            client=mock_client(lambda r: openai_response("{}"), requests),
        )

        await service.describe_text("a calzone", previous="Pizza, 285 kcal")

        body = json.loads(requests[0].content)
        assert body["model"] == "gpt-text"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 500
        prompt = body["messages"][1]["content"]
        assert "Pizza, 285 kcal" in prompt
        assert '"a calzone"' in prompt

    @pytest.mark.asyncio
    async def test_empty_choices_is_vendor_error(self):
        service = OpenAIVisionService(
            api_key="sk-test",
            client=mock_client(lambda r: httpx.Response(200, json={"choices": []}), []),
        )

        with pytest.raises(VisionAnalysisError) as exc_info:
            await service.describe_text("toast")

        assert exc_info.value.error_code == "VENDOR_ERROR"

    @pytest.mark.asyncio
    async def test_generate_image_downloads_url(self):
        image_bytes = make_image("PNG")
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/v1/images/generations":
                return httpx.Response(200, json={"data": [{"url": "https://images.test/meal.png"}]})
            return httpx.Response(200, content=image_bytes)

        service = OpenAIVisionService(api_key="sk-test", client=mock_client(handler, requests))

        result = await service.generate_image("grilled salmon")

        assert result == image_bytes
        generation, download = requests
        body = json.loads(generation.content)
        assert body["model"] == "dall-e-3"
        assert "grilled salmon" in body["prompt"]
        assert str(download.url) == "https://images.test/meal.png"
        assert "authorization" not in download.headers

    @pytest.mark.asyncio
    async def test_generate_image_decodes_b64_json(self):
        image_bytes = make_image("PNG")
        payload = {"data": [{"b64_json": base64.b64encode(image_bytes).decode()}]}
        service = OpenAIVisionService(
            api_key="sk-test",
            client=mock_client(lambda r: httpx.Response(200, json=payload), []),
        )

        assert await service.generate_image("toast") == image_bytes

    @pytest.mark.asyncio
    async def test_generate_image_with_invalid_b64_json(self):
        payload = {"data": [{"b64_json": "not*base64!"}]}
        service = OpenAIVisionService(
            api_key="sk-test",
            client=mock_client(lambda r: httpx.Response(200, json=payload), []),
        )

        with pytest.raises(VisionAnalysisError) as exc_info:
            await service.generate_image("toast")

        assert exc_info.value.error_code == "VENDOR_ERROR"
        assert exc_info.value.provider == "openai/dall-e-3"

    @pytest.mark.asyncio
    async def test_generate_image_without_result(self):
        service = OpenAIVisionService(
            api_key="sk-test",
            client=mock_client(lambda r: httpx.Response(200, json={"data": []}), []),
        )

        with pytest.raises(VisionAnalysisError):
            await service.generate_image("toast")


class TestFallbackServices:
    """Tests for the fixture and unavailable backends."""

    @pytest.mark.asyncio
    async def test_fixture_reply_is_extractable(self):
        service = FixtureVisionService()

        reply = await service.describe_image(TINY_PNG_BYTES, "image/png")
        result = extract_analysis(reply.text, reply.schema)

        assert service.status == "fixture"
        assert result.name == "Grilled Chicken Salad"
        assert result.calories == 420

    @pytest.mark.asyncio
    async def test_unavailable_raises(self):
        service = UnavailableVisionService("openai", "OPENAI_API_KEY is not set")

        with pytest.raises(VisionAnalysisError) as exc_info:
            await service.describe_text("toast")

        assert exc_info.value.error_code == "UNAVAILABLE"
        assert await service.health_check() is False


class TestFactory:
    """Tests for build_vision_service."""

    def _settings(self, **overrides) -> Settings:
        values = {"anthropic_api_key": "", "openai_api_key": "", "dev_mode": False}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    @pytest.mark.asyncio
    async def test_anthropic_with_key(self):
        service = build_vision_service(
            self._settings(vision_provider=VisionProvider.ANTHROPIC, anthropic_api_key="k")
        )

        assert isinstance(service, AnthropicVisionService)
        await service.close()

    @pytest.mark.asyncio
    async def test_openai_with_key(self):
        service = build_vision_service(
            self._settings(vision_provider=VisionProvider.OPENAI, openai_api_key="k")
        )

        assert isinstance(service, OpenAIVisionService)
        await service.close()

    def test_missing_key_is_unavailable(self):
        service = build_vision_service(self._settings(vision_provider=VisionProvider.OPENAI))

        assert isinstance(service, UnavailableVisionService)
        assert service.status == "unavailable"

    def test_missing_key_in_dev_mode_uses_fixture(self):
        service = build_vision_service(
            self._settings(vision_provider=VisionProvider.ANTHROPIC, dev_mode=True)
        )

        assert isinstance(service, FixtureVisionService)

    def test_fixture_provider(self):
        service = build_vision_service(self._settings(vision_provider=VisionProvider.FIXTURE))

        assert isinstance(service, FixtureVisionService)
