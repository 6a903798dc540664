import asyncio
import logging

from aiogram import Bot, Dispatcher

from hajj_portrait.photo_processing import SessionStore

from .core.config import load_config
from .handlers.portrait import router as portrait_router
from .service_client import PortraitServiceClient

logger = logging.getLogger(__name__)


def build_dispatcher(sessions: SessionStore) -> Dispatcher:
    dp = Dispatcher(sessions=sessions)
    dp.include_router(portrait_router)
    return dp


async def main():
    config = load_config()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    service = PortraitServiceClient(
        base_url=config.portrait_service_url,
        api_key=config.api_secret_key,
        timeout=config.request_timeout,
    )
    bot = Bot(token=config.bot_token)
    dp = build_dispatcher(SessionStore(service.transform))

    logger.info("Bot started...")
    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
