from __future__ import annotations

from enum import Enum

# callback_data format: "prefix:arg1:arg2"
SEP = ":"

LANG = "lang"
MENU = "menu"
EDIT = "edit"
APARTMENT = "apt"
PAY = "pay"
REVIEW = "review"


class MenuCommand(str, Enum):
    PROFILE = "profile"
    PAY = "pay"
    HISTORY = "history"
    CONTACT = "contact"
    SUMMARY = "summary"
    USERS = "users"


def pack(*parts: object) -> str:
    return SEP.join(str(part) for part in parts)


def unpack(data: str | None) -> list[str]:
    return data.split(SEP) if data else []


__all__ = ["APARTMENT", "EDIT", "LANG", "MENU", "MenuCommand", "PAY", "REVIEW", "SEP", "pack", "unpack"]
