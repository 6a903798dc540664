"""
Photo Processing module - portrait transformation through Gemini.

Provides:
- the Gemini image client
- per-user session state for the web page and the bot
- the stateless transform used by the HTTP endpoint
"""

from .image_client import (
    ImageGenerationClient,
    ImageGenerationError,
    MissingCredentialError,
    NoImageReturnedError,
)
from .service import process_photo
from .session import PortraitSession, SessionState, SessionStore

__all__ = [
    # Service
    "process_photo",
    # Clients
    "ImageGenerationClient",
    # Sessions
    "PortraitSession",
    "SessionState",
    "SessionStore",
    # Errors
    "ImageGenerationError",
    "MissingCredentialError",
    "NoImageReturnedError",
]
