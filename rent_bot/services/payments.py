from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from rent_bot import callbacks
from rent_bot.database import PaymentEntry, UserRecord, UserStore

LOGGER = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Keeps review button data well under Telegram's 64-byte callback limit.
MAX_AMOUNT = 10**12

# Re-approving the same month and amount inside this window is logged.
DUPLICATE_APPROVAL_WINDOW = timedelta(minutes=10)


def parse_amount(text: Optional[str]) -> Optional[int]:
    """Return a positive whole amount from user input, or ``None``.

    Spaces used as thousands separators are accepted ("50 000"). Values above
    :data:`MAX_AMOUNT` are rejected.
    """

    if not text:
        return None
    cleaned = text.strip().replace(" ", "").replace("\u00a0", "")
    if not (cleaned.isascii() and cleaned.isdigit()) or len(cleaned) > len(str(MAX_AMOUNT)):
        return None
    amount = int(cleaned)
    return amount if 0 < amount <= MAX_AMOUNT else None


def is_valid_month(value: str) -> bool:
    return bool(MONTH_PATTERN.match(value))


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


@dataclass(frozen=True, slots=True)
class ReviewDecision:
    approve: bool
    user_id: int
    amount: int
    month: str

    @classmethod
    def parse(cls, data: str) -> Optional["ReviewDecision"]:
        """Decode ``review:<ok|no>:<user id>:<amount>:<YYYY-MM>``."""
        parts = callbacks.unpack(data)
        if len(parts) != 5 or parts[0] != callbacks.REVIEW or parts[1] not in ("ok", "no"):
            return None
        _, verdict, raw_id, raw_amount, month = parts
        try:
            user_id, amount = int(raw_id), int(raw_amount)
        except ValueError:
            return None
        if not 0 < amount <= MAX_AMOUNT or not is_valid_month(month):
            return None
        return cls(approve=verdict == "ok", user_id=user_id, amount=amount, month=month)


def approve_payment(
    store: UserStore, user_id: int, amount: int, month: str, now: datetime
) -> UserRecord:
    """Credit ``amount`` to the user and append it to their payment history."""

    duplicate = False

    def _apply(record: UserRecord) -> None:
        nonlocal duplicate
        duplicate = any(
            _is_recent_match(entry, amount, month, now) for entry in record.payments
        )
        record.balance += amount
        record.is_paid = True
        record.payments.append(PaymentEntry(month=month, amount=amount, date=now.isoformat()))

    record = store.update_user(user_id, _apply)
    if duplicate:
        LOGGER.warning(
            "Payment of %s for %s approved again for user %s within %s; balance credited twice",
            amount,
            month,
            user_id,
            DUPLICATE_APPROVAL_WINDOW,
        )
    LOGGER.info("Payment of %s for %s confirmed for user %s", amount, month, user_id)
    return record


def _is_recent_match(entry: PaymentEntry, amount: int, month: str, now: datetime) -> bool:
    if entry.amount != amount or entry.month != month:
        return False
    try:
        return now - datetime.fromisoformat(entry.date) < DUPLICATE_APPROVAL_WINDOW
    except (TypeError, ValueError):
        return False


__all__ = [
    "DUPLICATE_APPROVAL_WINDOW",
    "MAX_AMOUNT",
    "ReviewDecision",
    "approve_payment",
    "is_valid_month",
    "month_key",
    "parse_amount",
]
