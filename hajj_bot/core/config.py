import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load .env only if it exists; in Docker the variables come from docker-compose.yml
env_file = os.path.join(os.path.dirname(__file__), '..', '..', '.env')
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    load_dotenv(override=False)


@dataclass
class BotConfig:
    """Bot configuration"""

    # Telegram Bot
    bot_token: str

    # Shared secret for the portrait service
    api_secret_key: str = ""

    # Settings
    log_level: str = "INFO"

    request_timeout: int = 300

    # Portrait service address
    portrait_service_url: str = "http://127.0.0.1:9000"

    def __post_init__(self):
        """Validate after init"""
        if not self.bot_token:
            raise ValueError("BOT_TOKEN is not set in the environment")


def load_config() -> BotConfig:
    """Load configuration from environment variables"""
    bot_token = os.getenv("BOT_TOKEN", "").strip()
    return BotConfig(
        bot_token=bot_token,
        api_secret_key=os.getenv("API_SECRET_KEY", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        request_timeout=int(os.getenv("REQUEST_TIMEOUT", "300")),
        portrait_service_url=os.getenv("PORTRAIT_SERVICE_URL", "http://127.0.0.1:9000"),
    )
