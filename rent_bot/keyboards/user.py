from __future__ import annotations

from typing import Iterable, Sequence

from telegram import (
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

from rent_bot import callbacks
from rent_bot.callbacks import MenuCommand
from rent_bot.messages import LANGUAGE_LABELS, SUPPORTED_LANGUAGES, t
from rent_bot.utils.formatting import format_amount

APARTMENT_COUNT = 90
APARTMENTS_PER_ROW = 6
MONTHS_PER_ROW = 3
SELECTED_MARK = "✅"


def language_keyboard() -> InlineKeyboardMarkup:
    row = [
        InlineKeyboardButton(LANGUAGE_LABELS[code], callback_data=callbacks.pack(callbacks.LANG, code))
        for code in SUPPORTED_LANGUAGES
    ]
    return InlineKeyboardMarkup([row])


def phone_request_keyboard(lang: str) -> ReplyKeyboardMarkup:
    button = KeyboardButton(t(lang, "share_phone_button"), request_contact=True)
    return ReplyKeyboardMarkup([[button]], resize_keyboard=True, one_time_keyboard=True)


def apartment_keyboard(lang: str, selected: Iterable[str] = ()) -> InlineKeyboardMarkup:
    chosen = set(selected)
    rows: list[list[InlineKeyboardButton]] = []
    for start in range(1, APARTMENT_COUNT + 1, APARTMENTS_PER_ROW):
        row = []
        for number in range(start, min(start + APARTMENTS_PER_ROW, APARTMENT_COUNT + 1)):
            label = f"{SELECTED_MARK} {number}" if str(number) in chosen else str(number)
            row.append(
                InlineKeyboardButton(label, callback_data=callbacks.pack(callbacks.APARTMENT, number))
            )
        rows.append(row)
    rows.append(
        [
            InlineKeyboardButton(
                t(lang, "apartment_confirm_button"),
                callback_data=callbacks.pack(callbacks.APARTMENT, "confirm"),
            ),
            InlineKeyboardButton(
                t(lang, "apartment_clear_button"),
                callback_data=callbacks.pack(callbacks.APARTMENT, "clear"),
            ),
        ]
    )
    return InlineKeyboardMarkup(rows)


def main_menu_keyboard(lang: str, *, include_admin: bool = False) -> InlineKeyboardMarkup:
    def button(command: MenuCommand) -> InlineKeyboardButton:
        return InlineKeyboardButton(
            t(lang, f"menu_{command.value}"),
            callback_data=callbacks.pack(callbacks.MENU, command.value),
        )

    buttons = [
        [button(MenuCommand.PROFILE), button(MenuCommand.PAY)],
        [button(MenuCommand.HISTORY), button(MenuCommand.CONTACT)],
        [button(MenuCommand.SUMMARY)],
    ]
    if include_admin:
        buttons.append([button(MenuCommand.USERS)])
    return InlineKeyboardMarkup(buttons)


def profile_keyboard(lang: str) -> InlineKeyboardMarkup:
    fields = ("first_name", "last_name", "apartment", "phone", "lang")
    return InlineKeyboardMarkup(
        [
            [InlineKeyboardButton(t(lang, f"edit_{name}"), callback_data=callbacks.pack(callbacks.EDIT, name))]
            for name in fields
        ]
    )


def month_keyboard(lang: str, year: int) -> InlineKeyboardMarkup:
    rows: list[list[InlineKeyboardButton]] = []
    for start in range(1, 13, MONTHS_PER_ROW):
        rows.append(
            [
                InlineKeyboardButton(
                    t(lang, f"month_{month}"),
                    callback_data=callbacks.pack(callbacks.PAY, "month", f"{year}-{month:02d}"),
                )
                for month in range(start, start + MONTHS_PER_ROW)
            ]
        )
    return InlineKeyboardMarkup(rows)


def amount_keyboard(lang: str, amounts: Sequence[int]) -> InlineKeyboardMarkup:
    rows = [
        [InlineKeyboardButton(format_amount(amount), callback_data=callbacks.pack(callbacks.PAY, "amount", amount))]
        for amount in amounts
    ]
    rows.append(
        [InlineKeyboardButton(t(lang, "custom_amount_button"), callback_data=callbacks.pack(callbacks.PAY, "custom"))]
    )
    return InlineKeyboardMarkup(rows)


__all__ = [
    "APARTMENT_COUNT",
    "amount_keyboard",
    "apartment_keyboard",
    "language_keyboard",
    "main_menu_keyboard",
    "month_keyboard",
    "phone_request_keyboard",
    "profile_keyboard",
]
