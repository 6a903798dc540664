import base64

import httpx
import pytest

from hajj_portrait.photo_processing.image_client import (
    FALLBACK_MESSAGE,
    MISSING_KEY_MESSAGE,
    NO_IMAGE_MESSAGE,
    ImageGenerationError,
    MissingCredentialError,
    NoImageReturnedError,
    decode_image,
    encode_image,
    split_data_uri,
)

from .gemini_stub import GeminiStub, gemini_response, inline_part, make_png


def test_split_data_uri():
    assert split_data_uri("data:image/webp;base64,AAAA") == ("image/webp", "AAAA")
    assert split_data_uri("AAAA") == (None, "AAAA")


def test_encode_image_sniffs_mime(png_bytes):
    uri = encode_image(png_bytes)
    assert uri.startswith("data:image/png;base64,")
    assert decode_image(uri) == ("image/png", png_bytes)


def test_encode_image_falls_back_to_jpeg():
    assert encode_image(b"not an image").startswith("data:image/jpeg;base64,")


async def test_missing_key_fails_before_network(gemini_ok, make_client, png_bytes):
    client = make_client(gemini_ok, api_key="")

    with pytest.raises(MissingCredentialError) as exc:
        await client.transform(encode_image(png_bytes), "prompt")

    assert str(exc.value) == MISSING_KEY_MESSAGE
    assert gemini_ok.requests == []
    await client.close()


async def test_transform_returns_first_image(gemini_ok, make_client, edited_bytes):
    client = make_client(gemini_ok)

    result = await client.transform("data:image/webp;base64,UklGRg==", "wear ihram")

    assert result == "data:image/png;base64," + base64.b64encode(edited_bytes).decode()

    request = gemini_ok.requests[0]
    assert request.url.path == "/v1beta/models/gemini-2.5-flash-image:generateContent"
    assert request.headers["x-goog-api-key"] == "test-key"

    parts = gemini_ok.last_body["contents"][0]["parts"]
    assert parts[0] == {"inline_data": {"mime_type": "image/webp", "data": "UklGRg=="}}
    assert parts[1] == {"text": "wear ihram"}
    await client.close()


async def test_bare_base64_mime_is_sniffed(gemini_ok, make_client):
    client = make_client(gemini_ok)
    payload = base64.b64encode(make_png()).decode()

    await client.transform(payload, "prompt")

    inline = gemini_ok.last_body["contents"][0]["parts"][0]["inline_data"]
    assert inline == {"mime_type": "image/png", "data": payload}
    await client.close()


async def test_first_inline_part_wins(make_client):
    first, second = make_png((1, 2, 3)), make_png((4, 5, 6))
    stub = GeminiStub(lambda request: httpx.Response(200, json=gemini_response(
        {"text": "two images"},
        inline_part(first, "image/jpeg"),
        inline_part(second),
    )))
    client = make_client(stub)

    result = await client.transform("AAAA", "prompt")

    assert result == "data:image/jpeg;base64," + base64.b64encode(first).decode()
    await client.close()


async def test_snake_case_inline_data(make_client):
    stub = GeminiStub(lambda request: httpx.Response(200, json=gemini_response(
        {"inline_data": {"mime_type": "image/webp", "data": "UklGRg=="}},
    )))
    client = make_client(stub)

    assert await client.transform("AAAA", "prompt") == "data:image/webp;base64,UklGRg=="
    await client.close()


@pytest.mark.parametrize("body", [
    gemini_response({"text": "I cannot edit this photo."}),
    {"candidates": []},
    {},
])
async def test_no_image_returned(make_client, body):
    client = make_client(GeminiStub(lambda request: httpx.Response(200, json=body)))

    with pytest.raises(NoImageReturnedError) as exc:
        await client.transform("AAAA", "prompt")

    assert str(exc.value) == NO_IMAGE_MESSAGE
    await client.close()


async def test_remote_error_message_is_surfaced(make_client):
    stub = GeminiStub(lambda request: httpx.Response(400, json={
        "error": {"code": 400, "message": "API key not valid.", "status": "INVALID_ARGUMENT"}
    }))
    client = make_client(stub)

    with pytest.raises(ImageGenerationError) as exc:
        await client.transform("AAAA", "prompt")

    assert str(exc.value) == "API key not valid."
    assert len(stub.requests) == 1
    await client.close()


async def test_transport_error_is_wrapped(make_client):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(GeminiStub(handler))

    with pytest.raises(ImageGenerationError) as exc:
        await client.transform("AAAA", "prompt")

    assert str(exc.value) == "connection refused"
    await client.close()


async def test_empty_error_uses_fallback(make_client):
    def handler(request):
        raise httpx.ReadTimeout("", request=request)

    client = make_client(GeminiStub(handler))

    with pytest.raises(ImageGenerationError) as exc:
        await client.transform("AAAA", "prompt")

    assert str(exc.value) == FALLBACK_MESSAGE
    await client.close()
