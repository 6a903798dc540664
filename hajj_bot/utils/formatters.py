import functools
import logging
from typing import Any, Optional

from aiogram.exceptions import TelegramAPIError
from aiogram.types import CallbackQuery, Message

logger = logging.getLogger(__name__)


async def safe_send_message(message: Message, text: str, user_id: Optional[int] = None, **kwargs: Any) -> Optional[Message]:
    """Send a reply, logging instead of raising when Telegram refuses it."""
    try:
        return await message.answer(text, **kwargs)
    except TelegramAPIError as e:
        logger.error(f"❌ Failed to send message to user {user_id}: {e}")
        return None


def handle_telegram_errors(handler):
    """Log Telegram API failures raised inside a handler instead of crashing the update."""
    @functools.wraps(handler)
    async def wrapper(event: Any, *args: Any, **kwargs: Any):
        try:
            return await handler(event, *args, **kwargs)
        except TelegramAPIError as e:
            user = getattr(event, "from_user", None)
            logger.error(f"❌ Telegram error in {handler.__name__} for user {getattr(user, 'id', None)}: {e}")
            if isinstance(event, CallbackQuery):
                try:
                    await event.answer()
                except TelegramAPIError as answer_error:
                    logger.debug(f"Could not answer callback: {answer_error}")
            return None
    return wrapper
