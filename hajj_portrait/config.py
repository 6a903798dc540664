import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# A .env next to the project root wins; in Docker the variables are already set
env_file = Path(__file__).parent.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)
else:
    load_dotenv(override=False)


@dataclass
class ServiceConfig:
    """Portrait service configuration"""

    # Gemini
    gemini_api_key: str = ""
    image_gen_base_url: str = "https://generativelanguage.googleapis.com"
    image_gen_model: str = "gemini-2.5-flash-image"
    image_gen_timeout: Optional[float] = None

    # Shared secret for /v1/photo/transform
    api_secret_key: str = ""

    # Settings
    log_level: str = "INFO"
    debug: bool = False
    port: int = 9000


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


def load_config() -> ServiceConfig:
    """Load configuration from environment variables."""
    return ServiceConfig(
        gemini_api_key=(os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip(),
        image_gen_base_url=os.getenv("IMAGE_GEN_BASE_URL") or "https://generativelanguage.googleapis.com",
        image_gen_model=os.getenv("IMAGE_GEN_MODEL") or "gemini-2.5-flash-image",
        image_gen_timeout=_optional_float(os.getenv("IMAGE_GEN_TIMEOUT")),
        api_secret_key=os.getenv("API_SECRET_KEY", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        debug=os.getenv("DEBUG", "false").lower() == "true",
        port=int(os.getenv("PORT", "9000")),
    )
