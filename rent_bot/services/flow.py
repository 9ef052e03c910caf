from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from telegram import ReplyKeyboardRemove

from rent_bot import callbacks
from rent_bot.callbacks import MenuCommand
from rent_bot.config import AdminConfig
from rent_bot.database import UserNotFoundError, UserRecord, UserStore
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
from rent_bot.keyboards.admin import review_keyboard
from rent_bot.keyboards.user import (
    APARTMENT_COUNT,
    amount_keyboard,
    apartment_keyboard,
    language_keyboard,
    main_menu_keyboard,
    month_keyboard,
    phone_request_keyboard,
    profile_keyboard,
)
from rent_bot.messages import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES, t
from rent_bot.services.payments import (
    ReviewDecision,
    approve_payment,
    is_valid_month,
    month_key,
    parse_amount,
)
from rent_bot.services.session import EDITABLE_FIELDS, Session, SessionRegistry
from rent_bot.utils.formatting import (
    format_admin_caption,
    format_amount,
    format_history,
    format_monthly_summary,
    format_profile,
    format_user_list,
)

LOGGER = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class FlowController:
    """Turns one inbound event into the effects the bot has to perform.

    Registration runs language → phone → apartments; once all three are set
    the sender works from the main menu. Per-sender state lives in a
    :class:`SessionRegistry`, user records in a :class:`UserStore`.
    """

    def __init__(
        self,
        store: UserStore,
        admin_config: AdminConfig,
        sessions: Optional[SessionRegistry] = None,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.store = store
        self.admin_config = admin_config
        self.sessions = sessions or SessionRegistry()
        self.clock = clock

    def handle(self, event: Event) -> list[Effect]:
        if isinstance(event, Start):
            return self._on_start(event)
        if isinstance(event, Button):
            return self._on_button(event)
        if isinstance(event, ContactShared):
            return self._on_contact(event)
        if isinstance(event, PhotoSubmitted):
            return self._on_photo(event)
        if isinstance(event, TextMessage):
            return self._on_text(event)
        raise TypeError(f"unsupported event {event!r}")

    # ------------------------------------------------------------------
    # Shared helpers

    def _ensure_user(self, sender: Sender) -> UserRecord:
        return self.store.ensure_user(
            sender.id,
            {
                "first_name": sender.first_name,
                "last_name": sender.last_name,
                "username": sender.username,
            },
        )

    def _main_menu(self, user: UserRecord, text_key: str = "main_menu") -> Reply:
        return Reply(
            t(user.lang, text_key),
            main_menu_keyboard(user.lang, include_admin=self.admin_config.is_admin(user.id)),
        )

    def _registration_step(self, user: UserRecord, session: Session) -> Optional[list[Effect]]:
        """Prompt for the first missing registration detail, if any."""

        if not user.lang:
            return [Reply(t(DEFAULT_LANGUAGE, "choose_language"), language_keyboard())]
        if not user.phone:
            session.awaiting_phone = True
            return [Reply(t(user.lang, "request_phone"), phone_request_keyboard(user.lang))]
        if not user.apartment:
            if not session.selecting_apartments:
                session.begin_apartment_selection()
            return [
                Reply(
                    t(user.lang, "choose_apartments"),
                    apartment_keyboard(user.lang, session.apartments),
                )
            ]
        return None

    def _set_field(self, user_id: int, field_name: str, value: object) -> UserRecord:
        return self.store.update_user(user_id, lambda record: setattr(record, field_name, value))

    # ------------------------------------------------------------------
    # Commands and shared content

    def _on_start(self, event: Start) -> list[Effect]:
        user = self._ensure_user(event.sender)
        session = self.sessions.reset(user.id)
        return self._registration_step(user, session) or [self._main_menu(user)]

    def _on_contact(self, event: ContactShared) -> list[Effect]:
        user = self._ensure_user(event.sender)
        session = self.sessions.get(user.id)
        if not user.lang:
            return self._registration_step(user, session) or []

        user = self._set_field(user.id, "phone", event.phone.strip())
        session.awaiting_phone = False
        LOGGER.info("User %s shared phone number", user.id)

        effects: list[Effect] = [Reply(t(user.lang, "phone_saved"), ReplyKeyboardRemove())]
        effects.extend(self._registration_step(user, session) or [self._main_menu(user)])
        return effects

    def _on_photo(self, event: PhotoSubmitted) -> list[Effect]:
        user = self._ensure_user(event.sender)
        session = self.sessions.get(user.id)
        pending = self._registration_step(user, session)
        if pending:
            return pending

        if not session.payment_ready:
            return [Reply(t(user.lang, "select_payment_first"))]

        month, amount = session.payment_month, session.payment_amount
        assert month is not None and amount is not None
        session.clear_payment()
        LOGGER.info("User %s submitted a screenshot for %s (%s)", user.id, month, amount)
        return [
            ForwardToAdmins(
                photo=event.file_id,
                caption=format_admin_caption(user, month, amount, DEFAULT_LANGUAGE),
                reply_markup=review_keyboard(DEFAULT_LANGUAGE, user.id, amount, month),
            ),
            self._main_menu(user, "screenshot_forwarded"),
        ]

    def _on_text(self, event: TextMessage) -> list[Effect]:
        user = self._ensure_user(event.sender)
        session = self.sessions.get(user.id)
        pending = self._registration_step(user, session)
        if pending:
            return pending

        if session.custom_pay:
            amount = parse_amount(event.text)
            if amount is None:
                return [Reply(t(user.lang, "invalid_amount"))]
            session.payment_amount = amount
            session.custom_pay = False
            return [Reply(self._transfer_instructions(user, session))]

        if session.editing_field:
            if not event.text.strip():
                return [Reply(t(user.lang, "empty_value"))]
            field_name = session.editing_field
            user = self._set_field(user.id, field_name, event.text)
            session.editing_field = None
            LOGGER.info("User %s updated %s", user.id, field_name)
            return [self._main_menu(user, "info_updated")]

        return [
            Reply(
                t(user.lang, "unrecognized", text=event.text),
                main_menu_keyboard(user.lang, include_admin=self.admin_config.is_admin(user.id)),
            )
        ]

    # ------------------------------------------------------------------
    # Inline buttons

    def _on_button(self, event: Button) -> list[Effect]:
        parts = callbacks.unpack(event.data)
        prefix = parts[0] if parts else ""
        args = parts[1:]

        if prefix == callbacks.REVIEW:
            return self._on_review(event)

        user = self._ensure_user(event.sender)
        session = self.sessions.get(user.id)

        if prefix == callbacks.LANG:
            return self._on_language(user, session, args)
        if prefix == callbacks.APARTMENT and user.lang and user.phone:
            return self._on_apartment(user, session, args)

        pending = self._registration_step(user, session)
        if pending:
            return [AnswerButton(), *pending]

        if prefix == callbacks.MENU:
            return self._on_menu(user, session, args)
        if prefix == callbacks.EDIT:
            return self._on_edit(user, session, args)
        if prefix == callbacks.PAY:
            return self._on_pay(user, session, args)
        return [AnswerButton(t(user.lang, "unknown_button"))]

    def _on_language(self, user: UserRecord, session: Session, args: list[str]) -> list[Effect]:
        code = args[0] if args else ""
        if code not in SUPPORTED_LANGUAGES:
            return [AnswerButton(t(user.lang, "unknown_button"))]

        user = self._set_field(user.id, "lang", code)
        effects: list[Effect] = [EditMessage(text=t(code, "language_saved"))]
        effects.extend(self._registration_step(user, session) or [self._main_menu(user)])
        return effects

    def _on_apartment(self, user: UserRecord, session: Session, args: list[str]) -> list[Effect]:
        action = args[0] if args else ""
        if not session.selecting_apartments:
            if user.apartment:
                return [AnswerButton(t(user.lang, "apartments_not_editing"))]
            # Session lost mid-registration: resume with an empty buffer.
            session.begin_apartment_selection()

        if action == "confirm":
            if not session.apartments:
                return [AnswerButton(t(user.lang, "apartments_select_one"))]
            chosen = list(session.apartments)
            overlap = self.store.taken_apartments(exclude_id=user.id).intersection(chosen)
            if overlap:
                LOGGER.warning(
                    "User %s selected apartments already held by others: %s",
                    user.id,
                    ", ".join(sorted(overlap, key=int)),
                )
            joined = ", ".join(chosen)
            text_key = "apartments_updated" if user.apartment else "apartments_saved"
            user = self._set_field(user.id, "apartment", joined)
            session.finish_apartment_selection()
            LOGGER.info("User %s saved apartments %s", user.id, joined)
            return [
                EditMessage(text=t(user.lang, text_key, apartments=joined)),
                self._main_menu(user),
            ]

        if action == "clear":
            session.apartments = []
        elif action.isdigit() and 1 <= int(action) <= APARTMENT_COUNT:
            session.toggle_apartment(action)
        else:
            return [AnswerButton(t(user.lang, "unknown_button"))]
        return [AnswerButton(), EditMessage(reply_markup=apartment_keyboard(user.lang, session.apartments))]

    def _on_menu(self, user: UserRecord, session: Session, args: list[str]) -> list[Effect]:
        try:
            command = MenuCommand(args[0] if args else "")
        except ValueError:
            return [AnswerButton(t(user.lang, "unknown_button"))]

        if command is MenuCommand.PROFILE:
            return [Reply(format_profile(user, user.lang), profile_keyboard(user.lang))]
        if command is MenuCommand.PAY:
            session.clear_payment()
            return [Reply(t(user.lang, "choose_month"), month_keyboard(user.lang, self.clock().year))]
        if command is MenuCommand.HISTORY:
            return [Reply(format_history(user, user.lang))]
        if command is MenuCommand.CONTACT:
            return [Reply(t(user.lang, "contact_admin", admin=self.admin_config.main_admin_username))]
        if command is MenuCommand.SUMMARY:
            month = month_key(self.clock())
            return [Reply(format_monthly_summary(self.store.load_users(), month, user.lang))]
        # MenuCommand.USERS
        if not self.admin_config.is_admin(user.id):
            return [AnswerButton(t(user.lang, "admin_only"), show_alert=True)]
        return [Reply(format_user_list(self.store.load_users(), user.lang))]

    def _on_edit(self, user: UserRecord, session: Session, args: list[str]) -> list[Effect]:
        target = args[0] if args else ""
        if target in EDITABLE_FIELDS:
            session.begin_edit(target)
            return [Reply(t(user.lang, f"prompt_{target}"))]
        if target == "apartment":
            session.begin_apartment_selection(user.apartments)
            return [
                EditMessage(
                    text=t(user.lang, "choose_apartments_again"),
                    reply_markup=apartment_keyboard(user.lang, session.apartments),
                )
            ]
        if target == "lang":
            return [Reply(t(user.lang, "choose_language"), language_keyboard())]
        return [AnswerButton(t(user.lang, "unknown_button"))]

    def _on_pay(self, user: UserRecord, session: Session, args: list[str]) -> list[Effect]:
        action = args[0] if args else ""

        if action == "month" and len(args) == 2 and is_valid_month(args[1]):
            session.clear_payment()
            session.payment_month = args[1]
            return [
                EditMessage(
                    text=t(user.lang, "choose_amount", month=args[1]),
                    reply_markup=amount_keyboard(user.lang, self.admin_config.preset_amounts),
                )
            ]

        if action not in ("amount", "custom"):
            return [AnswerButton(t(user.lang, "unknown_button"))]
        if not session.payment_month:
            return [
                AnswerButton(),
                Reply(t(user.lang, "choose_month"), month_keyboard(user.lang, self.clock().year)),
            ]

        if action == "custom":
            session.begin_custom_amount()
            return [Reply(t(user.lang, "enter_amount"))]

        amount = parse_amount(args[1]) if len(args) == 2 else None
        if amount is None or amount not in self.admin_config.preset_amounts:
            return [AnswerButton(t(user.lang, "unknown_button"))]
        session.payment_amount = amount
        session.custom_pay = False
        return [EditMessage(text=self._transfer_instructions(user, session))]

    def _transfer_instructions(self, user: UserRecord, session: Session) -> str:
        return t(
            user.lang,
            "transfer_instructions",
            amount=format_amount(session.payment_amount or 0),
            month=session.payment_month,
            card=self.admin_config.card_number,
        )

    # ------------------------------------------------------------------
    # Administrator review

    def _on_review(self, event: Button) -> list[Effect]:
        admin = event.sender
        admin_record = self.store.find_user(admin.id)
        admin_lang = admin_record.lang if admin_record and admin_record.lang else DEFAULT_LANGUAGE

        if not self.admin_config.is_admin(admin.id):
            LOGGER.warning("User %s tried to review a payment without admin rights", admin.id)
            return [AnswerButton(t(admin_lang, "admin_only"), show_alert=True)]

        decision = ReviewDecision.parse(event.data)
        if decision is None:
            return [AnswerButton(t(admin_lang, "unknown_button"))]

        if decision.approve:
            try:
                payer = approve_payment(
                    self.store, decision.user_id, decision.amount, decision.month, self.clock()
                )
            except UserNotFoundError:
                return [AnswerButton(t(admin_lang, "admin_user_not_found"), show_alert=True)]
            notice_key, verdict_key, ack_key = (
                "payment_confirmed",
                "admin_verdict_confirmed",
                "admin_confirmed",
            )
        else:
            payer = self.store.find_user(decision.user_id)
            if payer is None:
                return [AnswerButton(t(admin_lang, "admin_user_not_found"), show_alert=True)]
            LOGGER.info(
                "Payment of %s for %s declined for user %s by %s",
                decision.amount,
                decision.month,
                decision.user_id,
                admin.id,
            )
            notice_key, verdict_key, ack_key = (
                "payment_declined",
                "admin_verdict_declined",
                "admin_declined",
            )

        verdict = t(admin_lang, verdict_key)
        if admin.username:
            verdict += f" (@{admin.username})"
        caption = f"{event.message_text}\n\n{verdict}" if event.message_text else verdict
        return [
            Notify(
                decision.user_id,
                t(
                    payer.lang,
                    notice_key,
                    amount=format_amount(decision.amount),
                    month=decision.month,
                    admin=self.admin_config.main_admin_username,
                ),
            ),
            EditMessage(text=caption, caption=True),
            AnswerButton(t(admin_lang, ack_key)),
        ]


__all__ = ["FlowController"]
