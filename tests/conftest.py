"""Pytest configuration and fixtures."""

import base64
import io
import os
import struct
import zlib
from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from calorie_api.core.config import Settings, StoreBackend, VisionProvider
from calorie_api.core.exceptions import AuthenticationError
from calorie_api.core.security import AuthenticatedUser, TokenVerifier
from calorie_api.db.unit_of_work import UnitOfWork
from calorie_api.main import create_app
from calorie_api.models.analysis import CorrectionContext
from calorie_api.services.vision.base import (
    ReplySchema,
    VisionAnalysisService,
    VisionReply,
)
from calorie_api.services.vision.prompts import CLAUDE_IMAGE_SCHEMA, DESCRIPTION_SCHEMA

# Sample test image (1x1 red pixel PNG)
TINY_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mP8z8DwHwAFBQIAX8jx0gAAAABJRU5ErkJggg=="
)
TINY_PNG_BYTES = base64.b64decode(TINY_PNG_BASE64)

PIZZA_REPLY = (
    'Here is my analysis:\n{"title":"Pizza Slice","description":"A slice of pepperoni '
    'pizza with melted cheese","calories":"285","healthRating":"2"}'
)

DESCRIPTION_REPLY = (
    '{"name": "Oatmeal", "description": "Rolled oats with banana", "calories": 350, '
    '"protein": 10, "carbs": 60, "fats": 7, "healthScore": 5}'
)

ALICE = AuthenticatedUser(uid="alice", email="alice@example.com")
BOB = AuthenticatedUser(uid="bob", email="bob@example.com")
ALICE_HEADERS = {"Authorization": "Bearer token-alice"}
BOB_HEADERS = {"Authorization": "Bearer token-bob"}


def make_image(
    fmt: str = "JPEG",
    size: tuple[int, int] = (64, 48),
    mode: str = "RGB",
    noise: bool = False,
    **save_kwargs: Any,
) -> bytes:
    """Encode a generated image; `noise` makes it hard to compress."""
    if noise:
        channels = len(mode)
        image = Image.frombytes(mode, size, os.urandom(size[0] * size[1] * channels))
    else:
        color = (200, 80, 40, 128)[: len(mode)] if mode != "L" else 128
        image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_kwargs)
    return buffer.getvalue()


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """A PNG whose header declares more pixels than Pillow agrees to open."""

    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(kind + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IEND", b"")


class StaticTokenVerifier(TokenVerifier):
    """Maps fixed test tokens to users."""

    TOKENS = {"token-alice": ALICE, "token-bob": BOB}

    def verify(self, token: str) -> AuthenticatedUser:
        try:
            return self.TOKENS[token]
        except KeyError:
            raise AuthenticationError("Unauthorized: Invalid token") from None


class StubVisionService(VisionAnalysisService):
    """Vision backend returning canned text and recording its calls."""

    def __init__(
        self,
        reply: str = PIZZA_REPLY,
        schema: ReplySchema = CLAUDE_IMAGE_SCHEMA,
        text_reply: str = DESCRIPTION_REPLY,
        generated_image: bytes | None = None,
        error: Exception | None = None,
    ):
        self.reply = reply
        self.schema = schema
        self.text_reply = text_reply
        self.generated_image = generated_image
        self.error = error
        self.image_calls: list[dict[str, Any]] = []
        self.text_calls: list[dict[str, Any]] = []
        self.generate_calls: list[str] = []

    @property
    def provider_name(self) -> str:
        return "stub"

    async def describe_image(
        self,
        image_data: bytes,
        media_type: str,
        *,
        correction: CorrectionContext | None = None,
    ) -> VisionReply:
        self.image_calls.append(
            {"data": image_data, "media_type": media_type, "correction": correction}
        )
        if self.error is not None:
            raise self.error
        return VisionReply(text=self.reply, schema=self.schema, provider="stub")

    async def describe_text(self, description: str, *, previous: str | None = None) -> VisionReply:
        self.text_calls.append({"description": description, "previous": previous})
        if self.error is not None:
            raise self.error
        return VisionReply(text=self.text_reply, schema=DESCRIPTION_SCHEMA, provider="stub")

    async def generate_image(self, prompt: str) -> bytes | None:
        self.generate_calls.append(prompt)
        return self.generated_image

    async def health_check(self) -> bool:
        return True


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment, with a per-test upload dir."""
    return Settings(
        _env_file=None,
        dev_mode=False,
        store_backend=StoreBackend.MEMORY,
        vision_provider=VisionProvider.OPENAI,
        openai_api_key="",
        anthropic_api_key="",
        upload_dir=tmp_path / "uploads",
        generate_meal_images=True,
    )


@pytest.fixture
def uow() -> UnitOfWork:
    return UnitOfWork.in_memory()


@pytest.fixture
def vision() -> StubVisionService:
    return StubVisionService()


@pytest.fixture
def app(settings, uow, vision):
    return create_app(
        settings=settings,
        uow=uow,
        vision=vision,
        verifier=StaticTokenVerifier(),
    )


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async test client.

    Usage:
        async def test_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
