"""Entrypoint for the building payment bot.

Tenants register (language, phone, apartments), submit monthly payments with
a screenshot, and administrators approve or decline them. The conversation
logic lives in :mod:`rent_bot.services.flow`; this module only adapts
python-telegram-bot updates to flow events and performs the resulting effects.

:meth:`RentTelegramBot._build_rate_limiter` instantiates ``AIORateLimiter``.
Without the ``rate-limiter`` extra its constructor raises :class:`RuntimeError`; the
bot then logs a warning and runs without it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from telegram import Update
from telegram.error import BadRequest, InvalidToken, NetworkError, TelegramError, TimedOut
from telegram.ext import (
    AIORateLimiter,
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from rent_bot.config import AdminConfig, AdminConfigError, BotConfig
from rent_bot.database import UserStore, UserStoreError
from rent_bot.events import (
    AnswerButton,
    Button,
    ContactShared,
    EditMessage,
    Effect,
    Event,
    ForwardToAdmins,
    Notify,
    PhotoSubmitted,
    Reply,
    Sender,
    Start,
    TextMessage,
)
from rent_bot.messages import DEFAULT_LANGUAGE, t
from rent_bot.services.broadcast import BroadcastService
from rent_bot.services.flow import FlowController
from rent_bot.services.session import SessionRegistry

LOGGER = logging.getLogger(__name__)


def event_from_update(update: Update) -> Optional[Event]:
    """Translate a PTB update into a flow event, ``None`` if it is not handled."""

    user = update.effective_user
    if user is None:
        return None
    sender = Sender(
        id=user.id,
        first_name=user.first_name or "",
        last_name=user.last_name or "",
        username=user.username or "",
    )

    query = update.callback_query
    if query is not None:
        message = query.message
        message_text = ""
        if message is not None:
            message_text = getattr(message, "caption", None) or getattr(message, "text", None) or ""
        return Button(sender=sender, data=query.data or "", message_text=message_text)

    message = update.effective_message
    if message is None:
        return None
    if message.contact is not None:
        return ContactShared(sender=sender, phone=message.contact.phone_number)
    if message.photo:
        # Telegram lists sizes smallest first.
        return PhotoSubmitted(sender=sender, file_id=message.photo[-1].file_id)
    if message.text:
        if message.text.split(maxsplit=1)[0].split("@", 1)[0] == "/start":
            return Start(sender=sender)
        return TextMessage(sender=sender, text=message.text)
    return None


@dataclass
class RentTelegramBot:
    """Light-weight wrapper around the PTB application builder."""

    token: str
    admin_config: AdminConfig
    store: UserStore
    sessions: SessionRegistry = field(default_factory=SessionRegistry)

    def __post_init__(self) -> None:
        self.flow = FlowController(self.store, self.admin_config, self.sessions)

    def build_application(self) -> Application:
        """Construct the PTB application."""

        builder = ApplicationBuilder().token(self.token)

        limiter = self._build_rate_limiter()
        if limiter is not None:
            builder = builder.rate_limiter(limiter)

        application = builder.build()
        self._register_handlers(application)
        return application

    def _build_rate_limiter(self) -> Optional[AIORateLimiter]:
        try:
            return AIORateLimiter()
        except RuntimeError as exc:  # pragma: no cover - depends on installation
            LOGGER.warning(
                "Failed to initialise the AIORateLimiter: %s. Running without a rate limiter.",
                exc,
            )
            return None

    def _register_handlers(self, application: Application) -> None:
        """Attach all command and message handlers to ``application``."""

        application.add_handler(CommandHandler("start", self._handle_update))
        application.add_handler(CallbackQueryHandler(self._handle_update))
        application.add_handler(MessageHandler(filters.CONTACT, self._handle_update))
        application.add_handler(MessageHandler(filters.PHOTO, self._handle_update))
        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._handle_update))
        application.add_error_handler(self._handle_error)

    async def _handle_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        event = event_from_update(update)
        if event is None:
            return
        effects = self.flow.handle(event)
        await self.apply_effects(update, context, effects)

    # ------------------------------------------------------------------
    # Effect application

    async def apply_effects(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
        effects: Iterable[Effect],
    ) -> None:
        query = update.callback_query
        chat = update.effective_chat
        answered = False

        for effect in effects:
            if isinstance(effect, Reply):
                if chat is None:
                    continue
                await context.bot.send_message(
                    chat_id=chat.id, text=effect.text, reply_markup=effect.reply_markup
                )
            elif isinstance(effect, EditMessage):
                if query is None:
                    LOGGER.debug("Edit requested without a callback query, skipping")
                    continue
                await self._edit(query, effect)
            elif isinstance(effect, AnswerButton):
                if query is not None and not answered:
                    await query.answer(text=effect.text, show_alert=effect.show_alert)
                    answered = True
            elif isinstance(effect, Notify):
                try:
                    await context.bot.send_message(chat_id=effect.chat_id, text=effect.text)
                except TelegramError as exc:
                    LOGGER.warning("Failed to notify user %s: %s", effect.chat_id, exc)
            elif isinstance(effect, ForwardToAdmins):
                sent = await BroadcastService(context.bot).send_photo(
                    self.admin_config.admins,
                    effect.photo,
                    caption=effect.caption,
                    reply_markup=effect.reply_markup,
                )
                LOGGER.info("Payment screenshot delivered to %s of %s admins", sent, len(self.admin_config.admins))

        if query is not None and not answered:
            await query.answer()

    async def _edit(self, query, effect: EditMessage) -> None:
        try:
            if effect.caption:
                await query.edit_message_caption(caption=effect.text, reply_markup=effect.reply_markup)
            elif effect.text is not None:
                await query.edit_message_text(text=effect.text, reply_markup=effect.reply_markup)
            else:
                await query.edit_message_reply_markup(reply_markup=effect.reply_markup)
        except BadRequest as exc:
            if "not modified" not in str(exc).lower():
                raise

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        LOGGER.error("Unhandled error while processing update", exc_info=context.error)
        if not isinstance(update, Update):
            return

        lang = DEFAULT_LANGUAGE
        if update.effective_user is not None:
            try:
                record = self.store.find_user(update.effective_user.id)
            except UserStoreError:
                record = None
            if record is not None and record.lang:
                lang = record.lang

        try:
            if update.callback_query is not None:
                await update.callback_query.answer()
            if update.effective_chat is not None:
                await context.bot.send_message(
                    chat_id=update.effective_chat.id, text=t(lang, "try_again_later")
                )
        except TelegramError as exc:  # pragma: no cover - network dependent
            LOGGER.warning("Failed to report the error to the user: %s", exc)


def main() -> None:  # pragma: no cover - thin wrapper
    """Entry point used by the ``rent-bot`` console script."""

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram.ext").setLevel(logging.WARNING)

    try:
        config = BotConfig.load()
    except RuntimeError as exc:
        LOGGER.error("%s", exc)
        raise SystemExit(1) from exc
    logging.getLogger().setLevel(config.log_level)

    try:
        admin_config = AdminConfig.load(config.admin_config_path)
    except AdminConfigError as exc:
        LOGGER.error("Cannot start without a valid admin configuration: %s", exc)
        raise SystemExit(1) from exc

    bot = RentTelegramBot(
        token=config.token,
        admin_config=admin_config,
        store=UserStore(config.users_path),
    )
    application = bot.build_application()
    LOGGER.info("Bot started with %s admin(s), users file %s", len(admin_config.admins), config.users_path)
    try:
        application.run_polling()
    except InvalidToken as exc:  # pragma: no cover - network dependent
        LOGGER.error("Telegram rejected the bot token. Check BOT_TOKEN.")
        raise SystemExit(1) from exc
    except TimedOut as exc:  # pragma: no cover - network dependent
        LOGGER.error("Could not reach Telegram: request timed out (%s).", exc)
        raise SystemExit(1) from exc
    except NetworkError as exc:  # pragma: no cover - network dependent
        LOGGER.error("Network failure while talking to Telegram: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
