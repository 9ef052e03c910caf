"""Inbound events and outbound effects exchanged with the flow controller.

The Telegram layer turns updates into events, hands them to
:class:`rent_bot.services.flow.FlowController` and performs the returned
effects in order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from telegram import InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove

ReplyMarkup = Union[InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove]


@dataclass(frozen=True, slots=True)
class Sender:
    id: int
    first_name: str = ""
    last_name: str = ""
    username: str = ""


@dataclass(frozen=True, slots=True)
class Start:
    sender: Sender


@dataclass(frozen=True, slots=True)
class Button:
    sender: Sender
    data: str
    # Text or caption of the message the button is attached to.
    message_text: str = ""


@dataclass(frozen=True, slots=True)
class ContactShared:
    sender: Sender
    phone: str


@dataclass(frozen=True, slots=True)
class PhotoSubmitted:
    sender: Sender
    file_id: str


@dataclass(frozen=True, slots=True)
class TextMessage:
    sender: Sender
    text: str


Event = Union[Start, Button, ContactShared, PhotoSubmitted, TextMessage]


@dataclass(frozen=True, slots=True)
class Reply:
    text: str
    reply_markup: Optional[ReplyMarkup] = None


@dataclass(frozen=True, slots=True)
class EditMessage:
    """Edit the message carrying the pressed button.

    ``text=None`` only swaps the inline keyboard. ``caption=True`` edits a
    photo caption instead of a message text; the keyboard is dropped when
    ``reply_markup`` is ``None``.
    """

    text: Optional[str] = None
    reply_markup: Optional[InlineKeyboardMarkup] = None
    caption: bool = False


@dataclass(frozen=True, slots=True)
class AnswerButton:
    text: Optional[str] = None
    show_alert: bool = False


@dataclass(frozen=True, slots=True)
class Notify:
    chat_id: int
    text: str


@dataclass(frozen=True, slots=True)
class ForwardToAdmins:
    photo: str
    caption: str
    reply_markup: InlineKeyboardMarkup


Effect = Union[Reply, EditMessage, AnswerButton, Notify, ForwardToAdmins]


__all__ = [
    "AnswerButton",
    "Button",
    "ContactShared",
    "EditMessage",
    "Effect",
    "Event",
    "ForwardToAdmins",
    "Notify",
    "PhotoSubmitted",
    "Reply",
    "ReplyMarkup",
    "Sender",
    "Start",
    "TextMessage",
]
