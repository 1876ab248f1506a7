"""Inline keyboards for the guided flow."""

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from content_bot.bot.events import callback_data
from content_bot.choices import (
    CONTROL,
    DONE_SERVICES,
    PLATFORM,
    PLATFORMS,
    SERVICE,
    SERVICES,
    SKIP_CONTEXT,
    TONE,
    TONES,
)

CHECK_MARK = "✅ "


def _button(text: str, category: str, value: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=callback_data(category, value))


def _pairs(buttons: list[InlineKeyboardButton]) -> list[list[InlineKeyboardButton]]:
    return [buttons[i : i + 2] for i in range(0, len(buttons), 2)]


def platform_keyboard() -> InlineKeyboardMarkup:
    buttons = [_button(label, PLATFORM, value) for value, label in PLATFORMS.items()]
    return InlineKeyboardMarkup(inline_keyboard=_pairs(buttons))


def tone_keyboard() -> InlineKeyboardMarkup:
    buttons = [_button(label, TONE, value) for value, label in TONES.items()]
    return InlineKeyboardMarkup(inline_keyboard=_pairs(buttons))


def services_keyboard(selected: list[str] | tuple[str, ...] = ()) -> InlineKeyboardMarkup:
    """One row per service, selected ones marked, then the Done button."""
    rows = []
    for value, label in SERVICES.items():
        text = CHECK_MARK + label if value in selected else label
        rows.append([_button(text, SERVICE, value)])
    rows.append([_button("➡️ Done Selecting ➡️", CONTROL, DONE_SERVICES)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def context_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[[_button("Skip This Step", CONTROL, SKIP_CONTEXT)]]
    )
