"""Tests for the analysis endpoints and app-level handlers."""

import pytest
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus

from calorie_api.api.routes.analysis import stream_events
from calorie_api.main import create_app
from calorie_api.services.analysis import AnalysisService
from calorie_api.services.upload import UploadService
from calorie_api.services.vision import UnavailableVisionService, VisionAnalysisError

from conftest import ALICE_HEADERS, StaticTokenVerifier, StubVisionService, make_image


@pytest.fixture(autouse=True)
def reset_sse_exit_event():
    """sse-starlette caches its exit event on the first event loop it sees."""
    AppStatus.should_exit_event = None


def image_upload(content: bytes | None = None, filename: str = "meal.jpg", mime="image/jpeg"):
    return {"image": (filename, content if content is not None else make_image(), mime)}


async def client_for(settings, uow, vision) -> AsyncClient:
    app = create_app(settings=settings, uow=uow, vision=vision, verifier=StaticTokenVerifier())
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestAnalyzeImage:
    """Tests for POST /api/analyze-image."""

    @pytest.mark.asyncio
    async def test_analyze_photo(self, client: AsyncClient):
        response = await client.post("/api/analyze-image", files=image_upload())

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Food analyzed with AI"
        assert body["name"] == "Pizza Slice"
        assert body["calories"] == 285
        assert body["healthScore"] == 2
        assert body["imageUrl"] is None

    @pytest.mark.asyncio
    async def test_authenticated_caller(self, client: AsyncClient):
        response = await client.post(
            "/api/analyze-image", files=image_upload(), headers=ALICE_HEADERS
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_token_is_ignored(self, client: AsyncClient):
        response = await client.post(
            "/api/analyze-image",
            files=image_upload(),
            headers={"Authorization": "Bearer forged"},
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_no_image(self, client: AsyncClient):
        response = await client.post("/api/analyze-image", data={"note": "lunch"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "No image uploaded"}

    @pytest.mark.asyncio
    async def test_empty_image(self, client: AsyncClient):
        response = await client.post("/api/analyze-image", files=image_upload(b""))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid image: Image file is empty."

    @pytest.mark.asyncio
    async def test_oversized_image(self, client: AsyncClient, vision):
        response = await client.post(
            "/api/analyze-image", files=image_upload(b"\x00" * (5 * 1024 * 1024))
        )

        assert response.status_code == 400
        assert "Image too large (5.00MB)" in response.json()["message"]
        assert vision.image_calls == []

    @pytest.mark.asyncio
    async def test_vendor_error(self, settings, uow):
        vision = StubVisionService(error=VisionAnalysisError("Claude API error: 529"))

        async with await client_for(settings, uow, vision) as client:
            response = await client.post("/api/analyze-image", files=image_upload())

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "message": "Failed to analyze image: Claude API error: 529",
        }

    @pytest.mark.asyncio
    async def test_unparseable_reply(self, settings, uow):
        vision = StubVisionService(reply="I'm not sure what this is.")

        async with await client_for(settings, uow, vision) as client:
            response = await client.post("/api/analyze-image", files=image_upload())

        assert response.status_code == 500
        assert response.json()["message"].startswith("Failed to analyze image: ")

    @pytest.mark.asyncio
    async def test_unconfigured_backend(self, settings, uow):
        vision = UnavailableVisionService(
            "openai", "Image analysis is not configured (OPENAI_API_KEY is not set)"
        )

        async with await client_for(settings, uow, vision) as client:
            response = await client.post("/api/analyze-image", files=image_upload())

        assert response.status_code == 503
        assert response.json() == {
            "success": False,
            "message": "Image analysis is not configured (OPENAI_API_KEY is not set)",
        }

    @pytest.mark.asyncio
    async def test_scratch_files_removed(self, client: AsyncClient, settings):
        await client.post("/api/analyze-image", files=image_upload())

        assert list(settings.upload_dir.iterdir()) == []


class TestAnalyzeStream:
    """Tests for POST /api/analyze-stream."""

    @pytest.mark.asyncio
    async def test_stream_events(self, client: AsyncClient):
        response = await client.post("/api/analyze-stream", files=image_upload())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        text = response.text
        assert "event: status" in text
        assert "data: Starting analysis..." in text
        assert "data: Analysis complete!" in text
        assert "event: result" in text
        assert '"name":"Pizza Slice"' in text
        assert text.index("Starting analysis...") < text.index("event: result")

    @pytest.mark.asyncio
    async def test_stream_error_event(self, settings, uow):
        vision = StubVisionService(error=VisionAnalysisError("Claude API error: 500"))

        async with await client_for(settings, uow, vision) as client:
            response = await client.post("/api/analyze-stream", files=image_upload())

        assert response.status_code == 200
        assert "event: error" in response.text
        assert '"success": false' in response.text
        assert "event: result" not in response.text

    @pytest.mark.asyncio
    async def test_closing_stream_early_removes_scratch_files(self, tmp_path):
        upload_dir = tmp_path / "uploads"
        service = AnalysisService(vision=StubVisionService(), uploads=UploadService(upload_dir))
        events = stream_events(service, make_image(), "meal.jpg", "image/jpeg")

        seen = [await anext(events) for _ in range(3)]
        assert seen[2]["data"].startswith("Image validated")
        assert list(upload_dir.iterdir())

        await events.aclose()

        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_stream_without_image(self, client: AsyncClient):
        response = await client.post("/api/analyze-stream", data={"note": "lunch"})

        assert response.status_code == 400
        assert response.json()["message"] == "No image uploaded"


class TestCorrectMeal:
    """Tests for POST /api/correct-meal."""

    @pytest.mark.asyncio
    async def test_correction(self, client: AsyncClient, vision):
        response = await client.post(
            "/api/correct-meal",
            files=image_upload(),
            data={"previousResult": "Pizza Slice, 285 kcal", "correctionText": "Two slices"},
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Meal analysis corrected"
        correction = vision.image_calls[0]["correction"]
        assert correction.previous_result == "Pizza Slice, 285 kcal"
        assert correction.correction_text == "Two slices"

    @pytest.mark.asyncio
    async def test_missing_image(self, client: AsyncClient):
        response = await client.post(
            "/api/correct-meal",
            data={"previousResult": "Pizza", "correctionText": "Two slices"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No image provided"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "form",
        [
            {"previousResult": "Pizza"},
            {"correctionText": "Two slices"},
            {"previousResult": "", "correctionText": "Two slices"},
        ],
    )
    async def test_missing_correction_fields(self, client: AsyncClient, vision, form):
        response = await client.post("/api/correct-meal", files=image_upload(), data=form)

        assert response.status_code == 400
        assert response.json()["message"] == "Previous result and correction text are required"
        assert vision.image_calls == []


class TestAnalyzeDescription:
    """Tests for POST /api/analyze-description."""

    @pytest.mark.asyncio
    async def test_description(self, client: AsyncClient, vision):
        response = await client.post(
            "/api/analyze-description", json={"description": "  oatmeal with banana  "}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Meal description analyzed"
        assert body["name"] == "Oatmeal"
        assert body["calories"] == 350
        assert body["protein"] == 10
        assert body["imageUrl"] == "/placeholder.svg"
        assert vision.text_calls[0]["description"] == "oatmeal with banana"

    @pytest.mark.asyncio
    async def test_correction_leaves_image_unset(self, client: AsyncClient, vision):
        response = await client.post(
            "/api/analyze-description",
            json={"description": "it was a large bowl", "previousNutritionalInfo": "Oatmeal 350"},
        )

        assert response.status_code == 200
        assert response.json()["imageUrl"] is None
        assert vision.generate_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"description": ""}, {"description": "   "}])
    async def test_description_required(self, client: AsyncClient, body):
        response = await client.post("/api/analyze-description", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Description is required"}


class TestAppEndpoints:
    """Tests for /health and /."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store"] == "memory"
        assert body["vision"] == {"provider": "stub", "status": "available"}

    @pytest.mark.asyncio
    async def test_health_degraded_without_vision(self, settings, uow):
        vision = UnavailableVisionService("openai", "not configured")

        async with await client_for(settings, uow, vision) as client:
            response = await client.get("/health")

        assert response.json()["status"] == "degraded"
        assert response.json()["vision"]["status"] == "unavailable"

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.json()["docs"] == "/docs"
