import base64
import binascii
import io
import logging
import time
from typing import Any, Dict, Optional, Tuple

import httpx
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_MODEL = "gemini-2.5-flash-image"
DEFAULT_INPUT_MIME = "image/jpeg"
DEFAULT_OUTPUT_MIME = "image/png"

MISSING_KEY_MESSAGE = "API Key is missing. Please ensure GEMINI_API_KEY is set."
NO_IMAGE_MESSAGE = "The AI did not return an edited image. Please try again."
FALLBACK_MESSAGE = "Failed to transform image."


class ImageGenerationError(Exception):
    """Custom exception for image generation errors."""
    pass


class MissingCredentialError(ImageGenerationError):
    """Raised before any network call when no API key is configured."""


class NoImageReturnedError(ImageGenerationError):
    """The remote call succeeded but no part carried inline image data."""


def to_data_uri(mime: str, b64: str) -> str:
    """Convert raw base64 to a browser-ready data URI."""
    return f"data:{mime};base64,{b64}"


def split_data_uri(image: str) -> Tuple[Optional[str], str]:
    """
    Split ``data:<mime>;base64,<payload>`` into ``(mime, payload)``.

    A string without a data-URI prefix is returned as ``(None, image)``.
    """
    if image.startswith("data:") and "," in image:
        header, payload = image.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0] or None
        return mime, payload
    return None, image


def sniff_mime_type(image_bytes: bytes) -> Optional[str]:
    """Guess the mime type of raw image bytes with Pillow."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return Image.MIME.get(img.format)
    except (UnidentifiedImageError, OSError):
        return None


def encode_image(image_bytes: bytes, mime_type: Optional[str] = None) -> str:
    """Encode raw bytes as a data URI, sniffing the mime type when not given."""
    mime = mime_type or sniff_mime_type(image_bytes) or DEFAULT_INPUT_MIME
    return to_data_uri(mime, base64.b64encode(image_bytes).decode("utf-8"))


def decode_image(image: str) -> Tuple[str, bytes]:
    """Decode a data URI (or bare base64) into ``(mime, bytes)``."""
    mime, payload = split_data_uri(image)
    return mime or DEFAULT_OUTPUT_MIME, base64.b64decode(payload)


def _remote_error_message(exc: Exception) -> str:
    """Pull the most descriptive message out of a transport or remote failure."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        text = exc.response.text.strip()
        if text:
            return f"Gemini API error {exc.response.status_code}: {text}"
    return str(exc)


class ImageGenerationClient:
    """
    Gemini 2.5 Flash Image (image + prompt -> edited image).

    One ``generateContent`` request per call, no retries. Returns a
    ``data:image/...;base64,...`` string ready to be shown or downloaded.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={
                "Content-Type": "application/json",
                "Accept": "*/*",
            },
        )

    async def close(self):
        """Explicit client shutdown."""
        await self.client.aclose()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    @staticmethod
    def _prepare_image(image: str) -> Dict[str, Any]:
        """Strip the data-URI prefix and build an inline_data part."""
        mime_type, payload = split_data_uri(image)
        if not mime_type:
            try:
                raw = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError):
                raw = b""
            mime_type = sniff_mime_type(raw) or DEFAULT_INPUT_MIME

        logger.debug("Input mime: %s, payload: %d chars", mime_type, len(payload))
        return {
            "inline_data": {
                "mime_type": mime_type,
                "data": payload,
            }
        }

    @staticmethod
    def _extract_image(data: Dict[str, Any]) -> str:
        """Return the first inline image part of the first candidate as a data URI."""
        candidates = data.get("candidates") or []
        if candidates:
            content = candidates[0].get("content") or {}
            for part in content.get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    mime = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_OUTPUT_MIME
                    return to_data_uri(mime, inline["data"])

        raise NoImageReturnedError(NO_IMAGE_MESSAGE)

    async def transform(self, image: str, prompt: str) -> str:
        """
        image-to-image edit:
        - checks the API key before touching the network
        - sends image + prompt to Gemini generateContent
        - returns data:image/...;base64,... of the first image part
        """
        if not self.api_key:
            raise MissingCredentialError(MISSING_KEY_MESSAGE)

        start = time.monotonic()

        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        self._prepare_image(image),
                        {"text": prompt},
                    ],
                }
            ],
            "generationConfig": {
                "responseModalities": ["TEXT", "IMAGE"]
            },
        }

        logger.debug("Sending request to Gemini model=%s", self.model)

        try:
            resp = await self.client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
            if resp.status_code >= 400:
                logger.error("Gemini API error %s: %s", resp.status_code, resp.text)
                resp.raise_for_status()

            result = self._extract_image(resp.json())
        except ImageGenerationError:
            logger.warning("Gemini returned no image part")
            raise
        except Exception as e:
            logger.error("Gemini API Error: %s", e, exc_info=True)
            raise ImageGenerationError(_remote_error_message(e) or FALLBACK_MESSAGE) from e

        elapsed = time.monotonic() - start
        logger.info("Gemini execution time: %.2fs", elapsed)

        return result
