import asyncio
import logging

import aiohttp

from hajj_portrait.photo_processing.image_client import (
    FALLBACK_MESSAGE,
    NO_IMAGE_MESSAGE,
    ImageGenerationError,
    NoImageReturnedError,
)

logger = logging.getLogger(__name__)

SERVICE_DOWN_MESSAGE = "The image service is not responding right now. Please try again later."
NETWORK_ERROR_MESSAGE = "Cannot reach the image service. Please try again in a moment."


class PortraitServiceClient:
    """Calls the portrait service's stateless transform endpoint; usable as a session transformer."""

    def __init__(self, base_url: str, api_key: str, timeout: int = 300):
        self.endpoint = f"{base_url.rstrip('/')}/v1/photo/transform"
        self.api_key = api_key
        self.timeout = timeout

    async def transform(self, image: str, prompt: str) -> str:
        payload = {"image": image, "prompt": prompt}
        headers = {
            "Content-Type": "application/json",
            "X-API-KEY": self.api_key,
        }

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.endpoint, json=payload, headers=headers) as resp:
                    if resp.status != 200:
                        error_body = await resp.text()
                        logger.error(f"❌ Portrait service error {resp.status}: {error_body}")
                        raise ImageGenerationError(SERVICE_DOWN_MESSAGE)
                    result = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"❌ Network error calling portrait service: {e}")
            raise ImageGenerationError(NETWORK_ERROR_MESSAGE) from e

        if result.get("status") != "success":
            error_message = result.get("message") or FALLBACK_MESSAGE
            logger.error(f"❌ Portrait service returned {result.get('error_type')}: {error_message}")
            raise ImageGenerationError(error_message)

        image_uri = (result.get("result") or {}).get("image")
        if not image_uri:
            raise NoImageReturnedError(NO_IMAGE_MESSAGE)
        return image_uri
