from __future__ import annotations

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from rent_bot import callbacks
from rent_bot.messages import t


def review_keyboard(lang: str, user_id: int, amount: int, month: str) -> InlineKeyboardMarkup:
    buttons = [
        [
            InlineKeyboardButton(
                t(lang, "approve_button"),
                callback_data=callbacks.pack(callbacks.REVIEW, "ok", user_id, amount, month),
            ),
            InlineKeyboardButton(
                t(lang, "decline_button"),
                callback_data=callbacks.pack(callbacks.REVIEW, "no", user_id, amount, month),
            ),
        ]
    ]
    return InlineKeyboardMarkup(buttons)


__all__ = ["review_keyboard"]
