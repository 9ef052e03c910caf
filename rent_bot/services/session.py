from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

EDITABLE_FIELDS = ("first_name", "last_name", "phone")


@dataclass(slots=True)
class Session:
    """Per-sender conversational state. Lost on restart."""

    awaiting_phone: bool = False
    selecting_apartments: bool = False
    apartments: list[str] = field(default_factory=list)
    editing_field: Optional[str] = None
    custom_pay: bool = False
    payment_month: Optional[str] = None
    payment_amount: Optional[int] = None

    def begin_apartment_selection(self, current: Iterable[str] = ()) -> None:
        self.selecting_apartments = True
        self.apartments = list(current)

    def toggle_apartment(self, number: str) -> list[str]:
        if number in self.apartments:
            self.apartments.remove(number)
        else:
            self.apartments.append(number)
        return self.apartments

    def finish_apartment_selection(self) -> None:
        self.selecting_apartments = False
        self.apartments = []

    # Only one free-text capture may be armed at a time.
    def begin_edit(self, field_name: str) -> None:
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"field {field_name!r} cannot be edited as text")
        self.editing_field = field_name
        self.custom_pay = False

    def begin_custom_amount(self) -> None:
        self.custom_pay = True
        self.editing_field = None

    def clear_payment(self) -> None:
        self.custom_pay = False
        self.payment_month = None
        self.payment_amount = None

    @property
    def payment_ready(self) -> bool:
        return bool(self.payment_month and self.payment_amount)


class SessionRegistry:
    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}

    def get(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = Session()
        return session

    def reset(self, user_id: int) -> Session:
        session = self._sessions[user_id] = Session()
        return session


__all__ = ["EDITABLE_FIELDS", "Session", "SessionRegistry"]
