import httpx
import pytest

from hajj_portrait.photo_processing import ImageGenerationClient

from .gemini_stub import GeminiStub, gemini_response, inline_part, make_png


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def edited_bytes() -> bytes:
    return make_png((10, 120, 60))


@pytest.fixture
def gemini_ok(edited_bytes) -> GeminiStub:
    return GeminiStub(lambda request: httpx.Response(200, json=gemini_response(
        {"text": "Here is your portrait."},
        inline_part(edited_bytes),
    )))


@pytest.fixture
def make_client():
    def factory(stub: GeminiStub, api_key: str = "test-key") -> ImageGenerationClient:
        return ImageGenerationClient(
            api_key=api_key,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(stub)),
        )
    return factory
