"""
Hajj Portrait Service

Modules:
- photo_processing: Gemini client and per-user session state
- service: the single-page UI and its HTTP API
"""

from .photo_processing import ImageGenerationClient, PortraitSession, process_photo

__all__ = [
    "ImageGenerationClient",
    "PortraitSession",
    "process_photo",
]
