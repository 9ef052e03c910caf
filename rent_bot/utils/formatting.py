from __future__ import annotations

from datetime import datetime
from typing import Iterable

from rent_bot.database import UserRecord
from rent_bot.messages import t


def format_amount(amount: int) -> str:
    return f"{amount:,}".replace(",", " ")


def format_timestamp(value: str) -> str:
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        return value
    return moment.strftime("%d.%m.%Y %H:%M")


def format_profile(user: UserRecord, lang: str) -> str:
    missing = t(lang, "not_set")
    return t(
        lang,
        "profile",
        first_name=user.first_name or missing,
        last_name=user.last_name or missing,
        username=f"@{user.username}" if user.username else missing,
        apartment=user.apartment or missing,
        phone=user.phone or missing,
        balance=format_amount(user.balance),
    )


def format_history(user: UserRecord, lang: str) -> str:
    if not user.payments:
        return t(lang, "history_empty")
    rows = [
        t(
            lang,
            "history_row",
            index=index,
            month=payment.month,
            amount=format_amount(payment.amount),
            date=format_timestamp(payment.date),
        )
        for index, payment in enumerate(user.payments, start=1)
    ]
    return t(lang, "history_header") + "\n\n" + "\n\n".join(rows)


def format_monthly_summary(users: Iterable[UserRecord], month: str, lang: str) -> str:
    """Totals per user for ``month``, only users who paid in that month."""

    rows = []
    for user in users:
        paid = [payment.amount for payment in user.payments if payment.month == month]
        if not paid:
            continue
        total = sum(paid)
        rows.append(
            t(
                lang,
                "summary_row",
                index=len(rows) + 1,
                name=user.full_name or user.username or user.id,
                apartment=user.apartment or "-",
                total=format_amount(total),
            )
        )
    if not rows:
        return t(lang, "summary_empty")
    return t(lang, "summary_header", month=month) + "\n\n" + "\n".join(rows)


def format_user_list(users: Iterable[UserRecord], lang: str) -> str:
    users = list(users)
    if not users:
        return t(lang, "users_empty")
    rows = [
        t(
            lang,
            "users_row",
            index=index,
            name=user.full_name or user.username or user.id,
            apartment=user.apartment or "-",
            phone=user.phone or "-",
            balance=format_amount(user.balance),
        )
        for index, user in enumerate(users, start=1)
    ]
    return t(lang, "users_header", count=len(users)) + "\n" + "\n".join(rows)


def format_admin_caption(user: UserRecord, month: str, amount: int, lang: str) -> str:
    return t(
        lang,
        "admin_caption",
        name=user.full_name or user.id,
        username=user.username or "-",
        apartment=user.apartment or "-",
        phone=user.phone or "-",
        month=month,
        amount=format_amount(amount),
    )


__all__ = [
    "format_admin_caption",
    "format_amount",
    "format_history",
    "format_monthly_summary",
    "format_profile",
    "format_timestamp",
    "format_user_list",
]
