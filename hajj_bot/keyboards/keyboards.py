from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


def portrait_keyboard() -> InlineKeyboardMarkup:
    """
    Keyboard shown once a photo is uploaded.
    """
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🕋 Transform to Hajj Pilgrim", callback_data="transform")],
        [InlineKeyboardButton(text="✏️ Use default prompt", callback_data="default_prompt")],
        [InlineKeyboardButton(text="🔄 Restart & Start New", callback_data="restart")],
    ])


def restart_keyboard() -> InlineKeyboardMarkup:
    """A single restart button."""
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🔄 Restart & Start New", callback_data="restart")]
    ])
