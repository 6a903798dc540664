"""
Portrait Handler - the Hajj transformation flow in chat.

- photo (or image document) -> upload
- any text -> prompt
- 🕋 button -> transform, result sent back as hajj-portrait.png
- 🔄 button -> restart
"""

import logging

from aiogram import Bot, F, Router
from aiogram.filters import Command, CommandStart
from aiogram.types import BufferedInputFile, CallbackQuery, Message

from hajj_portrait.photo_processing import SessionStore
from hajj_portrait.photo_processing.image_client import decode_image
from hajj_portrait.photo_processing.prompts import RESULT_FILENAME, UPLOAD_HINT

from ..keyboards.keyboards import portrait_keyboard, restart_keyboard
from ..utils.formatters import handle_telegram_errors, safe_send_message

logger = logging.getLogger(__name__)

router = Router()


# ============================================================================
# /start
# ============================================================================

@router.message(CommandStart())
@handle_telegram_errors
async def start_command(message: Message, sessions: SessionStore):
    telegram_id = message.from_user.id
    sessions.get(telegram_id).reset()

    await safe_send_message(
        message,
        "🕋 <b>Hajj Portrait Transformer</b>\n\n"
        "Send me a portrait photo and I will dress you in white Ihram garments "
        "with the Kaaba in the background, keeping your face as it is.\n\n"
        f"<i>{UPLOAD_HINT}</i>",
        user_id=telegram_id,
        parse_mode="HTML",
    )


@router.message(Command("prompt"))
@handle_telegram_errors
async def prompt_command(message: Message, sessions: SessionStore):
    """Show the prompt that will be used."""
    session = sessions.get(message.from_user.id)
    await safe_send_message(
        message,
        f"Current prompt:\n\n{session.prompt}",
        user_id=message.from_user.id,
    )


# ============================================================================
# Upload
# ============================================================================

@router.message(F.photo)
@handle_telegram_errors
async def process_photo(message: Message, bot: Bot, sessions: SessionStore):
    telegram_id = message.from_user.id
    photo = message.photo[-1]

    buffer = await bot.download(photo)
    sessions.get(telegram_id).upload(buffer.getvalue(), "image/jpeg")

    logger.info(f"📸 Photo received from user {telegram_id}, file_id: {photo.file_id}")

    await safe_send_message(
        message,
        "✅ <b>Photo uploaded.</b>\n\n"
        "Send a message to refine the prompt, or press the button to transform.",
        user_id=telegram_id,
        parse_mode="HTML",
        reply_markup=portrait_keyboard(),
    )


@router.message(F.document.mime_type.startswith("image/"))
@handle_telegram_errors
async def process_image_document(message: Message, bot: Bot, sessions: SessionStore):
    telegram_id = message.from_user.id
    document = message.document

    buffer = await bot.download(document)
    sessions.get(telegram_id).upload(buffer.getvalue(), document.mime_type)

    logger.info(f"📎 Image document received from user {telegram_id}: {document.file_name}")

    await safe_send_message(
        message,
        "✅ <b>Image uploaded.</b>\n\n"
        "Send a message to refine the prompt, or press the button to transform.",
        user_id=telegram_id,
        parse_mode="HTML",
        reply_markup=portrait_keyboard(),
    )


# ============================================================================
# Prompt
# ============================================================================

@router.message(F.text)
@handle_telegram_errors
async def process_prompt(message: Message, sessions: SessionStore):
    telegram_id = message.from_user.id
    session = sessions.get(telegram_id)
    session.set_prompt(message.text)

    logger.info(f"📝 Prompt received from user {telegram_id}: {session.prompt[:50]}...")

    await safe_send_message(
        message,
        "📝 Prompt updated.",
        user_id=telegram_id,
        reply_markup=portrait_keyboard() if session.state.original_image else None,
    )


@router.callback_query(F.data == "default_prompt")
@handle_telegram_errors
async def callback_default_prompt(callback: CallbackQuery, sessions: SessionStore):
    sessions.get(callback.from_user.id).set_prompt(None)
    await callback.answer("Default prompt restored")


# ============================================================================
# Transform
# ============================================================================

@router.callback_query(F.data == "transform")
@handle_telegram_errors
async def callback_transform(callback: CallbackQuery, sessions: SessionStore):
    telegram_id = callback.from_user.id
    session = sessions.get(telegram_id)

    if not session.state.original_image:
        await callback.answer("Send a photo first!", show_alert=True)
        return
    if session.state.is_loading:
        await callback.answer("Already working on it...")
        return

    await callback.answer()
    processing_message = await safe_send_message(
        callback.message,
        "🔮 <b>Generating artwork...</b>\n\n"
        "Rendering the Hajj garments with the Kaaba background. This usually takes 5-10 seconds.",
        user_id=telegram_id,
        parse_mode="HTML",
    )

    previous_image = session.state.edited_image
    try:
        state = await session.transform()

        # restarted while waiting
        if state is not session.state:
            return

        if state.last_error:
            await safe_send_message(
                callback.message,
                f"⚠️ {state.last_error}",
                user_id=telegram_id,
                reply_markup=portrait_keyboard(),
            )
        elif state.edited_image and state.edited_image != previous_image:
            _, image_bytes = decode_image(state.edited_image)
            await callback.message.answer_document(
                document=BufferedInputFile(image_bytes, filename=RESULT_FILENAME),
                caption="Done! Here is your portrait.",
                reply_markup=restart_keyboard(),
            )
            logger.info(f"✅ Portrait sent to user {telegram_id}")
    finally:
        if processing_message:
            await processing_message.delete()


# ============================================================================
# Restart
# ============================================================================

@router.callback_query(F.data == "restart")
@handle_telegram_errors
async def callback_restart(callback: CallbackQuery, sessions: SessionStore):
    telegram_id = callback.from_user.id

    logger.info(f"🔚 User {telegram_id} restarted")

    sessions.get(telegram_id).reset()

    await callback.message.answer(f"Send me a new portrait photo.\n\n{UPLOAD_HINT}")
    await callback.answer()
