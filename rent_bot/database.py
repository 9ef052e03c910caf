from __future__ import annotations

import copy
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

LOGGER = logging.getLogger(__name__)


class UserStoreError(RuntimeError):
    """Raised when the users file cannot be read or written."""


class UserStoreCorruptedError(UserStoreError):
    """The users file exists but does not hold a JSON array of records."""


class UserNotFoundError(UserStoreError, LookupError):
    pass


@dataclass(slots=True)
class PaymentEntry:
    month: str
    amount: int
    date: str

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "PaymentEntry":
        return cls(
            month=str(payload.get("month", "")),
            amount=int(payload.get("amount", 0)),
            date=str(payload.get("date", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"month": self.month, "amount": self.amount, "date": self.date}


@dataclass(slots=True)
class UserRecord:
    id: int
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    phone: str = ""
    apartment: str = ""
    balance: int = 0
    is_paid: bool = False
    payments: List[PaymentEntry] = field(default_factory=list)
    lang: str = ""

    @property
    def apartments(self) -> list[str]:
        return [item.strip() for item in self.apartment.split(",") if item.strip()]

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def is_registered(self) -> bool:
        return bool(self.lang and self.phone and self.apartment)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "UserRecord":
        # Early files keyed records by ``telegramId``.
        raw_id = payload.get("id", payload.get("telegramId"))
        if raw_id is None:
            raise ValueError("user record without id")
        payments = payload.get("payments") or []
        return cls(
            id=int(raw_id),
            first_name=str(payload.get("firstName") or ""),
            last_name=str(payload.get("lastName") or ""),
            username=str(payload.get("username") or ""),
            phone=str(payload.get("phone") or ""),
            apartment=str(payload.get("apartment") or ""),
            balance=int(payload.get("balance") or 0),
            is_paid=bool(payload.get("isPaid", False)),
            payments=[PaymentEntry.from_dict(item) for item in payments if isinstance(item, dict)],
            lang=str(payload.get("lang") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "phone": self.phone,
            "apartment": self.apartment,
            "balance": self.balance,
            "isPaid": self.is_paid,
            "payments": [payment.to_dict() for payment in self.payments],
            "lang": self.lang,
        }


class UserStore:
    """JSON file holding every user record, with an mtime-keyed read cache.

    All mutations go through :meth:`update_user` or :meth:`ensure_user`, which
    hold a single lock across the whole load-modify-save cycle.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._cache: Optional[list[UserRecord]] = None
        self._cache_mtime: Optional[int] = None

    def _current_mtime(self) -> Optional[int]:
        try:
            return self.path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def load_users(self) -> list[UserRecord]:
        mtime = self._current_mtime()
        if mtime is None:
            self._cache, self._cache_mtime = [], None
            return []
        if self._cache is not None and mtime == self._cache_mtime:
            return copy.deepcopy(self._cache)

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            LOGGER.error("Could not read users file %s: %s", self.path, exc)
            raise UserStoreError(f"cannot read {self.path}") from exc
        except ValueError as exc:
            LOGGER.error("Users file %s is not valid JSON: %s", self.path, exc)
            raise UserStoreCorruptedError(f"{self.path} is not valid JSON") from exc

        if not isinstance(raw, list):
            LOGGER.error("Users file %s does not contain a JSON array", self.path)
            raise UserStoreCorruptedError(f"{self.path} does not contain a JSON array")

        try:
            records = [UserRecord.from_dict(item) for item in raw if isinstance(item, dict)]
        except (TypeError, ValueError) as exc:
            LOGGER.error("Users file %s holds a malformed record: %s", self.path, exc)
            raise UserStoreCorruptedError(f"{self.path} holds a malformed record") from exc

        self._cache, self._cache_mtime = records, mtime
        return copy.deepcopy(records)

    def save_users(self, users: Iterable[UserRecord]) -> None:
        records = list(users)
        payload = [record.to_dict() for record in records]
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            LOGGER.error("Could not save users file %s: %s", self.path, exc)
            raise UserStoreError(f"cannot write {self.path}") from exc

        self._cache = copy.deepcopy(records)
        self._cache_mtime = self._current_mtime()

    def find_user(self, user_id: int) -> Optional[UserRecord]:
        for record in self.load_users():
            if record.id == user_id:
                return record
        return None

    def ensure_user(self, user_id: int, defaults: Optional[dict[str, Any]] = None) -> UserRecord:
        """Return the record for ``user_id``, creating it from ``defaults`` if absent."""
        with self._lock:
            users = self.load_users()
            for record in users:
                if record.id == user_id:
                    return record
            record = UserRecord(id=user_id, **(defaults or {}))
            users.append(record)
            self.save_users(users)
            LOGGER.info("Registered new user %s", user_id)
            return record

    def update_user(self, user_id: int, mutate: Callable[[UserRecord], None]) -> UserRecord:
        with self._lock:
            users = self.load_users()
            for record in users:
                if record.id == user_id:
                    mutate(record)
                    self.save_users(users)
                    return record
        raise UserNotFoundError(f"user {user_id} is not registered")

    def taken_apartments(self, exclude_id: Optional[int] = None) -> set[str]:
        taken: set[str] = set()
        for record in self.load_users():
            if record.id != exclude_id:
                taken.update(record.apartments)
        return taken


__all__ = [
    "PaymentEntry",
    "UserNotFoundError",
    "UserRecord",
    "UserStore",
    "UserStoreCorruptedError",
    "UserStoreError",
]
