"""
Stateless photo transformation used by the bot-facing endpoint.

The web page goes through ``PortraitSession`` instead; both end up in
``ImageGenerationClient.transform``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from .image_client import ImageGenerationClient
from .prompts import DEFAULT_PROMPT

logger = logging.getLogger(__name__)


async def process_photo(
    client: ImageGenerationClient,
    image: str,
    prompt: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Transform one photo by prompt.

    Args:
        client: configured Gemini client
        image: data URI or bare base64 of the source photo
        prompt: instruction text, the default Hajj prompt when empty

    Returns:
        Dict with:
        - image: data URI of the edited image
        - processing_time: seconds spent

    Raises:
        ImageGenerationError: missing key, remote failure or no image returned
    """
    start_time = datetime.now()
    prompt = (prompt or "").strip() or DEFAULT_PROMPT

    logger.info(f"📸 Processing photo with prompt: {prompt[:50]}...")

    try:
        image_uri = await client.transform(image, prompt)
    except Exception as e:
        total_time = (datetime.now() - start_time).total_seconds()
        logger.error(f"❌ Photo processing failed after {total_time:.2f}s: {e}")
        raise

    processing_time = (datetime.now() - start_time).total_seconds()
    logger.info(f"✅ Photo processed successfully in {processing_time:.2f}s")

    return {
        "image": image_uri,
        "processing_time": processing_time,
    }
