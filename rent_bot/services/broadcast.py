from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from telegram import Bot, InlineKeyboardMarkup

LOGGER = logging.getLogger(__name__)


class BroadcastService:
    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    async def send_photo(
        self,
        chat_ids: Iterable[int],
        photo: str,
        *,
        caption: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> int:
        """Send ``photo`` to every chat at once; failures are logged per chat."""
        recipients = list(chat_ids)
        results = await asyncio.gather(
            *(
                self.bot.send_photo(
                    chat_id=chat_id, photo=photo, caption=caption, reply_markup=reply_markup
                )
                for chat_id in recipients
            ),
            return_exceptions=True,
        )
        sent = 0
        for chat_id, result in zip(recipients, results):
            if isinstance(result, Exception):
                LOGGER.warning("Failed to forward payment screenshot to admin %s: %s", chat_id, result)
                continue
            sent += 1
        return sent


__all__ = ["BroadcastService"]
