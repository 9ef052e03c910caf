from __future__ import annotations

import re
from typing import Any

DEFAULT_LANGUAGE = "ru"
SUPPORTED_LANGUAGES = ("ru", "uz")

LANGUAGE_LABELS = {
    "ru": "\U0001F1F7\U0001F1FA Русский",
    "uz": "\U0001F1FA\U0001F1FF O'zbekcha",
}

TRANSLATIONS: dict[str, dict[str, str]] = {
    "ru": {
        "choose_language": "\U0001F310 Выберите язык / Tilni tanlang:",
        "language_saved": "✅ Язык сохранён.",
        "request_phone": "Добро пожаловать! Пожалуйста, отправьте ваш номер телефона.",
        "share_phone_button": "\U0001F4F1 Отправить номер телефона",
        "phone_saved": "✅ Номер телефона сохранён.",
        "choose_apartments": "\U0001F4CB Выберите один или несколько номеров квартир:",
        "choose_apartments_again": "Выберите новые номера квартир:",
        "apartments_select_one": "Сначала выберите хотя бы одну квартиру",
        "apartments_not_editing": "Выбор квартир уже завершён.",
        "apartments_saved": "✅ Регистрация завершена! Квартиры сохранены: {apartments}",
        "apartments_updated": "✅ Квартиры обновлены: {apartments}",
        "apartment_confirm_button": "✅ Подтвердить",
        "apartment_clear_button": "❌ Очистить",
        "main_menu": "Вы можете использовать меню ниже.",
        "menu_profile": "\U0001F464 Мой профиль",
        "menu_pay": "\U0001F4B8 Оплата",
        "menu_history": "\U0001F9FE История оплат",
        "menu_contact": "\U0001F4DE Связаться с админом",
        "menu_summary": "\U0001F4CA Посмотреть оплаты",
        "menu_users": "\U0001F465 Список жильцов",
        "unrecognized": "Команда «{text}» не распознана. Пожалуйста, используйте кнопки меню.",
        "unknown_button": "Эта кнопка больше не активна.",
        "profile": (
            "\U0001F464 Ваш профиль:\n\n"
            "Имя: {first_name}\n"
            "Фамилия: {last_name}\n"
            "Username: {username}\n"
            "Квартира: {apartment}\n"
            "Телефон: {phone}\n"
            "Баланс: {balance} сум"
        ),
        "not_set": "не указано",
        "edit_first_name": "✏️ Изменить имя",
        "edit_last_name": "✏️ Изменить фамилию",
        "edit_apartment": "\U0001F3E2 Изменить квартиру",
        "edit_phone": "\U0001F4DE Изменить телефон",
        "edit_lang": "\U0001F310 Изменить язык",
        "prompt_first_name": "Введите новое имя:",
        "prompt_last_name": "Введите новую фамилию:",
        "prompt_phone": "Введите новый номер телефона:",
        "empty_value": "Значение не может быть пустым. Попробуйте ещё раз.",
        "info_updated": "✅ Информация обновлена.",
        "choose_month": "\U0001F4C5 Выберите месяц оплаты:",
        "choose_amount": "Месяц: {month}\nВыберите сумму:",
        "custom_amount_button": "Другая сумма",
        "enter_amount": "Введите нужную сумму (числом):",
        "invalid_amount": "Пожалуйста, введите корректную сумму (положительное целое число).",
        "transfer_instructions": (
            "Переведите {amount} сум за {month} на карту: {card}\n"
            "Затем отправьте скриншот перевода."
        ),
        "select_payment_first": "Сначала выберите месяц и сумму через «\U0001F4B8 Оплата».",
        "screenshot_forwarded": "Скриншот отправлен на проверку администраторам.",
        "admin_caption": (
            "\U0001F4B3 Новая оплата\n"
            "Пользователь: {name} (@{username})\n"
            "Квартира: {apartment}\n"
            "Телефон: {phone}\n"
            "Месяц: {month}\n"
            "Сумма: {amount} сум"
        ),
        "approve_button": "✅ Подтвердить",
        "decline_button": "❌ Отклонить",
        "payment_confirmed": "✅ Оплата на сумму {amount} сум за {month} подтверждена. Баланс обновлён.",
        "payment_declined": (
            "❌ Оплата на сумму {amount} сум за {month} отклонена. "
            "Свяжитесь с админом: {admin}"
        ),
        "admin_confirmed": "Оплата подтверждена.",
        "admin_declined": "Оплата отклонена.",
        "admin_verdict_confirmed": "✅ Подтверждено",
        "admin_verdict_declined": "❌ Отклонено",
        "admin_user_not_found": "Пользователь не найден.",
        "admin_only": "Это действие доступно только администраторам.",
        "history_empty": "История оплат пуста.",
        "history_header": "\U0001F4DC История оплат:",
        "history_row": "{index}. Месяц: {month}\nСумма: {amount} сум\nДата: {date}",
        "contact_admin": "Для связи с администратором: {admin}",
        "summary_header": "\U0001F4CA Оплаты за {month}:",
        "summary_row": "{index}. {name} ({apartment}) — {total} сум",
        "summary_empty": "❗ В этом месяце пока никто не оплатил.",
        "users_header": "\U0001F465 Жильцы ({count}):",
        "users_row": "{index}. {name} — кв. {apartment}, {phone}, баланс {balance} сум",
        "users_empty": "Пока никто не зарегистрировался.",
        "try_again_later": "Произошла ошибка. Пожалуйста, попробуйте позже.",
        "month_1": "Январь",
        "month_2": "Февраль",
        "month_3": "Март",
        "month_4": "Апрель",
        "month_5": "Май",
        "month_6": "Июнь",
        "month_7": "Июль",
        "month_8": "Август",
        "month_9": "Сентябрь",
        "month_10": "Октябрь",
        "month_11": "Ноябрь",
        "month_12": "Декабрь",
    },
    "uz": {
        "language_saved": "✅ Til saqlandi.",
        "request_phone": "Xush kelibsiz! Iltimos, telefon raqamingizni yuboring.",
        "share_phone_button": "\U0001F4F1 Telefon raqamni yuborish",
        "phone_saved": "✅ Telefon raqam saqlandi.",
        "choose_apartments": "\U0001F4CB Bir yoki bir nechta xonadon raqamini tanlang:",
        "choose_apartments_again": "Yangi xonadon raqamlarini tanlang:",
        "apartments_select_one": "Avval kamida bitta xonadonni tanlang",
        "apartments_not_editing": "Xonadon tanlash allaqachon yakunlangan.",
        "apartments_saved": "✅ Ro'yxatdan o'tish yakunlandi! Xonadonlar saqlandi: {apartments}",
        "apartments_updated": "✅ Xonadonlar yangilandi: {apartments}",
        "apartment_confirm_button": "✅ Tasdiqlash",
        "apartment_clear_button": "❌ Tozalash",
        "main_menu": "Quyidagi menyudan foydalanishingiz mumkin.",
        "menu_profile": "\U0001F464 Mening profilim",
        "menu_pay": "\U0001F4B8 To'lov",
        "menu_history": "\U0001F9FE To'lovlar tarixi",
        "menu_contact": "\U0001F4DE Admin bilan bog'lanish",
        "menu_summary": "\U0001F4CA To'lovlarni ko'rish",
        "menu_users": "\U0001F465 Yashovchilar ro'yxati",
        "unrecognized": "«{text}» buyrug'i tanilmadi. Iltimos, menyu tugmalaridan foydalaning.",
        "unknown_button": "Bu tugma endi faol emas.",
        "profile": (
            "\U0001F464 Sizning profilingiz:\n\n"
            "Ism: {first_name}\n"
            "Familiya: {last_name}\n"
            "Username: {username}\n"
            "Xonadon: {apartment}\n"
            "Telefon: {phone}\n"
            "Balans: {balance} so'm"
        ),
        "not_set": "ko'rsatilmagan",
        "edit_first_name": "✏️ Ismni o'zgartirish",
        "edit_last_name": "✏️ Familiyani o'zgartirish",
        "edit_apartment": "\U0001F3E2 Xonadonni o'zgartirish",
        "edit_phone": "\U0001F4DE Telefonni o'zgartirish",
        "edit_lang": "\U0001F310 Tilni o'zgartirish",
        "prompt_first_name": "Yangi ismni kiriting:",
        "prompt_last_name": "Yangi familiyani kiriting:",
        "prompt_phone": "Yangi telefon raqamini kiriting:",
        "empty_value": "Qiymat bo'sh bo'lishi mumkin emas. Qaytadan urinib ko'ring.",
        "info_updated": "✅ Ma'lumot yangilandi.",
        "choose_month": "\U0001F4C5 To'lov oyini tanlang:",
        "choose_amount": "Oy: {month}\nSummani tanlang:",
        "custom_amount_button": "Boshqa summa",
        "enter_amount": "Kerakli summani kiriting (raqam bilan):",
        "invalid_amount": "Iltimos, to'g'ri summani kiriting (musbat butun son).",
        "transfer_instructions": (
            "{month} uchun {amount} so'mni kartaga o'tkazing: {card}\n"
            "So'ng o'tkazma skrinshotini yuboring."
        ),
        "select_payment_first": "Avval «\U0001F4B8 To'lov» orqali oy va summani tanlang.",
        "screenshot_forwarded": "Skrinshot administratorlarga tekshirish uchun yuborildi.",
        "payment_confirmed": "✅ {month} uchun {amount} so'm to'lov tasdiqlandi. Balans yangilandi.",
        "payment_declined": (
            "❌ {month} uchun {amount} so'm to'lov rad etildi. "
            "Admin bilan bog'laning: {admin}"
        ),
        "admin_confirmed": "To'lov tasdiqlandi.",
        "admin_declined": "To'lov rad etildi.",
        "admin_user_not_found": "Foydalanuvchi topilmadi.",
        "admin_only": "Bu amal faqat administratorlar uchun.",
        "history_empty": "To'lovlar tarixi bo'sh.",
        "history_header": "\U0001F4DC To'lovlar tarixi:",
        "history_row": "{index}. Oy: {month}\nSumma: {amount} so'm\nSana: {date}",
        "contact_admin": "Administrator bilan bog'lanish: {admin}",
        "summary_header": "\U0001F4CA {month} uchun to'lovlar:",
        "summary_row": "{index}. {name} ({apartment}) — {total} so'm",
        "summary_empty": "❗ Bu oyda hali hech kim to'lamagan.",
        "users_header": "\U0001F465 Yashovchilar ({count}):",
        "users_row": "{index}. {name} — xonadon {apartment}, {phone}, balans {balance} so'm",
        "users_empty": "Hali hech kim ro'yxatdan o'tmagan.",
        "try_again_later": "Xatolik yuz berdi. Iltimos, keyinroq urinib ko'ring.",
        "month_1": "Yanvar",
        "month_2": "Fevral",
        "month_3": "Mart",
        "month_4": "Aprel",
        "month_5": "May",
        "month_6": "Iyun",
        "month_7": "Iyul",
        "month_8": "Avgust",
        "month_9": "Sentyabr",
        "month_10": "Oktyabr",
        "month_11": "Noyabr",
        "month_12": "Dekabr",
    },
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def t(lang: str | None, key: str, **values: Any) -> str:
    """Return the ``key`` template for ``lang`` with placeholders filled in.

    Falls back to :data:`DEFAULT_LANGUAGE` and then to the key itself.
    Placeholders without a value are replaced by an empty string.
    """

    template = (
        TRANSLATIONS.get(lang or DEFAULT_LANGUAGE, {}).get(key)
        or TRANSLATIONS[DEFAULT_LANGUAGE].get(key)
        or key
    )

    def _substitute(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(_substitute, template)


__all__ = [
    "DEFAULT_LANGUAGE",
    "LANGUAGE_LABELS",
    "SUPPORTED_LANGUAGES",
    "TRANSLATIONS",
    "t",
]
