from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock
import importlib.util
import sys

import pytest
from telegram import CallbackQuery, Chat, Contact, Message, PhotoSize, Update, User
from telegram.error import BadRequest, Forbidden

from rent_bot.events import (
    AnswerButton,
    Button,
    ContactShared,
    EditMessage,
    ForwardToAdmins,
    Notify,
    PhotoSubmitted,
    Reply,
    Start,
    TextMessage,
)
from rent_bot.messages import t
from rent_bot.services.broadcast import BroadcastService


def load_main_module():
    module_path = Path(__file__).resolve().parent.parent / "main.py"
    spec = importlib.util.spec_from_file_location("main", module_path)
    module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


main = load_main_module()
RentTelegramBot = main.RentTelegramBot
event_from_update = main.event_from_update

CHAT = Chat(id=42, type=Chat.PRIVATE)
USER = User(id=42, first_name="Aziz", is_bot=False, last_name="Karimov", username="aziz")


def make_message(**kwargs):
    return Message(
        message_id=1,
        date=datetime(2025, 3, 15, tzinfo=timezone.utc),
        chat=CHAT,
        from_user=USER,
        **kwargs,
    )


def make_update(message=None, callback_query=None):
    return Update(update_id=1, message=message, callback_query=callback_query)


def test_start_command_becomes_start_event():
    event = event_from_update(make_update(make_message(text="/start")))

    assert isinstance(event, Start)
    assert event.sender.id == 42
    assert event.sender.username == "aziz"


def test_start_with_bot_mention_is_recognised():
    assert isinstance(event_from_update(make_update(make_message(text="/start@rent_bot"))), Start)


def test_plain_text_becomes_text_event():
    event = event_from_update(make_update(make_message(text="hello")))

    assert event == TextMessage(sender=event.sender, text="hello")


def test_contact_becomes_contact_event():
    contact = Contact(phone_number="+998901234567", first_name="Aziz", user_id=42)

    event = event_from_update(make_update(make_message(contact=contact)))

    assert isinstance(event, ContactShared)
    assert event.phone == "+998901234567"


def test_photo_uses_largest_size():
    photo = (
        PhotoSize(file_id="small", file_unique_id="s", width=90, height=90),
        PhotoSize(file_id="large", file_unique_id="l", width=1280, height=1280),
    )

    event = event_from_update(make_update(make_message(photo=photo, caption="paid")))

    assert event == PhotoSubmitted(sender=event.sender, file_id="large")


def test_callback_query_carries_caption_of_message():
    query = CallbackQuery(
        id="q1",
        from_user=USER,
        chat_instance="ci",
        data="review:ok:42:50000:2025-03",
        message=make_message(caption="New payment", photo=(PhotoSize("f", "u", 1, 1),)),
    )

    event = event_from_update(make_update(callback_query=query))

    assert isinstance(event, Button)
    assert event.data == "review:ok:42:50000:2025-03"
    assert event.message_text == "New payment"


def test_unsupported_message_is_ignored():
    assert event_from_update(make_update(make_message())) is None


@pytest.fixture
def bot(store, admin_config):
    return RentTelegramBot(token="123:abc", admin_config=admin_config, store=store)


def fake_update(with_query=True):
    query = None
    if with_query:
        query = SimpleNamespace(
            answer=AsyncMock(),
            edit_message_text=AsyncMock(),
            edit_message_caption=AsyncMock(),
            edit_message_reply_markup=AsyncMock(),
        )
    return SimpleNamespace(callback_query=query, effective_chat=SimpleNamespace(id=42))


@pytest.mark.asyncio
async def test_effects_are_applied_in_order(bot):
    update = fake_update()
    context = SimpleNamespace(bot=AsyncMock())

    await bot.apply_effects(
        update,
        context,
        [
            AnswerButton("saved"),
            EditMessage(text="edited"),
            Reply("hello"),
            Notify(7, "your payment"),
        ],
    )

    update.callback_query.answer.assert_awaited_once_with(text="saved", show_alert=False)
    update.callback_query.edit_message_text.assert_awaited_once_with(text="edited", reply_markup=None)
    assert context.bot.send_message.await_args_list[0].kwargs == {
        "chat_id": 42,
        "text": "hello",
        "reply_markup": None,
    }
    assert context.bot.send_message.await_args_list[1].kwargs == {"chat_id": 7, "text": "your payment"}


@pytest.mark.asyncio
async def test_button_is_answered_even_without_explicit_answer(bot):
    update = fake_update()

    await bot.apply_effects(update, SimpleNamespace(bot=AsyncMock()), [Reply("menu")])

    update.callback_query.answer.assert_awaited_once_with()


@pytest.mark.asyncio
async def test_caption_edit_and_keyboard_only_edit(bot):
    update = fake_update()

    await bot.apply_effects(
        update,
        SimpleNamespace(bot=AsyncMock()),
        [EditMessage(text="caption\n\n✅", caption=True), EditMessage(reply_markup=None)],
    )

    update.callback_query.edit_message_caption.assert_awaited_once_with(
        caption="caption\n\n✅", reply_markup=None
    )
    update.callback_query.edit_message_reply_markup.assert_awaited_once_with(reply_markup=None)


@pytest.mark.asyncio
async def test_not_modified_edit_is_ignored(bot):
    update = fake_update()
    update.callback_query.edit_message_text.side_effect = BadRequest(
        "Message is not modified: specified new message content is the same"
    )

    await bot.apply_effects(update, SimpleNamespace(bot=AsyncMock()), [EditMessage(text="same")])

    update.callback_query.answer.assert_awaited_once_with()


@pytest.mark.asyncio
async def test_other_edit_failures_propagate(bot):
    update = fake_update()
    update.callback_query.edit_message_text.side_effect = BadRequest("Message to edit not found")

    with pytest.raises(BadRequest):
        await bot.apply_effects(update, SimpleNamespace(bot=AsyncMock()), [EditMessage(text="x")])


@pytest.mark.asyncio
async def test_failed_notification_does_not_stop_other_effects(bot):
    update = fake_update(with_query=False)
    context = SimpleNamespace(bot=AsyncMock())
    context.bot.send_message.side_effect = [Forbidden("bot was blocked by the user"), None]

    await bot.apply_effects(update, context, [Notify(7, "approved"), Reply("done")])

    assert context.bot.send_message.await_count == 2


@pytest.mark.asyncio
async def test_screenshot_is_sent_to_every_admin(bot, admin_config):
    update = fake_update(with_query=False)
    context = SimpleNamespace(bot=AsyncMock())

    await bot.apply_effects(
        update, context, [ForwardToAdmins(photo="file", caption="caption", reply_markup=None)]
    )

    recipients = sorted(call.kwargs["chat_id"] for call in context.bot.send_photo.await_args_list)
    assert recipients == sorted(admin_config.admins)


@pytest.mark.asyncio
async def test_broadcast_counts_only_successful_deliveries():
    telegram_bot = AsyncMock()

    async def send_photo(chat_id, **kwargs):
        if chat_id == 2:
            raise Forbidden("bot was blocked by the user")

    telegram_bot.send_photo.side_effect = send_photo

    sent = await BroadcastService(telegram_bot).send_photo([1, 2, 3], "file", caption="c")

    assert sent == 2
    assert telegram_bot.send_photo.await_count == 3


@pytest.mark.asyncio
async def test_error_handler_apologises_in_user_language(bot, registered_tenant, store):
    store.update_user(registered_tenant.id, lambda user: setattr(user, "lang", "uz"))
    context = SimpleNamespace(bot=AsyncMock(), error=RuntimeError("boom"))

    await bot._handle_error(make_update(make_message(text="hi")), context)

    context.bot.send_message.assert_awaited_once_with(chat_id=42, text=t("uz", "try_again_later"))


@pytest.mark.asyncio
async def test_full_update_round_trip(bot, registered_tenant):
    context = SimpleNamespace(bot=AsyncMock())

    await bot._handle_update(make_update(make_message(text="/start")), context)

    kwargs = context.bot.send_message.await_args.kwargs
    assert kwargs["chat_id"] == 42
    assert kwargs["text"] == t("ru", "main_menu")
