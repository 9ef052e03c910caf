import json
import os
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from rent_bot import database
from rent_bot.database import (
    PaymentEntry,
    UserNotFoundError,
    UserRecord,
    UserStore,
    UserStoreCorruptedError,
)


def test_missing_file_loads_as_empty_store(tmp_path):
    store = UserStore(tmp_path / "nested" / "users.json")

    assert store.load_users() == []
    assert store.find_user(1) is None


def test_second_load_without_changes_is_served_from_cache(store, monkeypatch):
    store.save_users([UserRecord(id=1, first_name="A")])
    store._cache = None  # force one real read

    calls = []
    original_loads = json.loads

    def counting_loads(raw, *args, **kwargs):
        calls.append(raw)
        return original_loads(raw, *args, **kwargs)

    monkeypatch.setattr(database.json, "loads", counting_loads)

    first = store.load_users()
    second = store.load_users()

    assert len(calls) == 1
    assert first == second


def test_cached_records_are_not_shared_with_callers(store):
    store.save_users([UserRecord(id=1, balance=10)])

    loaded = store.load_users()
    loaded[0].balance = 999

    assert store.load_users()[0].balance == 10


def test_save_is_visible_to_next_load(store):
    store.save_users([UserRecord(id=1, first_name="Old")])
    assert store.load_users()[0].first_name == "Old"

    store.save_users([UserRecord(id=1, first_name="New"), UserRecord(id=2)])

    assert [user.first_name for user in store.load_users()] == ["New", ""]


def test_external_change_with_newer_mtime_is_reloaded(store):
    store.save_users([UserRecord(id=1)])
    store.load_users()

    store.path.write_text(json.dumps([{"id": 7, "firstName": "Edited"}]), encoding="utf-8")
    stat = store.path.stat()
    os.utime(store.path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

    assert [user.id for user in store.load_users()] == [7]


def test_file_uses_camel_case_keys(store):
    store.save_users(
        [
            UserRecord(
                id=5,
                first_name="Aziz",
                is_paid=True,
                payments=[PaymentEntry(month="2025-03", amount=50000, date="2025-03-15T12:30:00")],
                lang="uz",
            )
        ]
    )

    raw = json.loads(store.path.read_text(encoding="utf-8"))

    assert raw == [
        {
            "id": 5,
            "firstName": "Aziz",
            "lastName": "",
            "username": "",
            "phone": "",
            "apartment": "",
            "balance": 0,
            "isPaid": True,
            "payments": [{"month": "2025-03", "amount": 50000, "date": "2025-03-15T12:30:00"}],
            "lang": "uz",
        }
    ]


def test_legacy_records_keyed_by_telegram_id_are_read(store):
    store.path.write_text(
        json.dumps([{"telegramId": 77, "firstName": "Old", "balance": 100, "payments": []}]),
        encoding="utf-8",
    )

    user = store.find_user(77)

    assert user is not None
    assert user.first_name == "Old"
    assert user.balance == 100
    assert user.lang == ""


def test_corrupted_file_raises_instead_of_looking_empty(store):
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(UserStoreCorruptedError):
        store.load_users()


def test_non_array_file_is_reported_as_corrupted(store):
    store.path.write_text(json.dumps({"users": []}), encoding="utf-8")

    with pytest.raises(UserStoreCorruptedError):
        store.load_users()


def test_ensure_user_creates_once(store):
    first = store.ensure_user(3, {"first_name": "Aziz", "username": "aziz"})
    second = store.ensure_user(3, {"first_name": "Ignored"})

    assert first.first_name == "Aziz"
    assert second.first_name == "Aziz"
    assert len(store.load_users()) == 1


def test_update_user_persists_mutation(store):
    store.save_users([UserRecord(id=1), UserRecord(id=2)])

    updated = store.update_user(2, lambda user: setattr(user, "phone", "+998"))

    assert updated.phone == "+998"
    assert store.find_user(2).phone == "+998"
    assert store.find_user(1).phone == ""


def test_update_unknown_user_raises(store):
    with pytest.raises(UserNotFoundError):
        store.update_user(404, lambda user: None)


def test_consecutive_updates_keep_both_changes(tmp_path):
    path = tmp_path / "users.json"
    UserStore(path).save_users([UserRecord(id=1), UserRecord(id=2)])
    store = UserStore(path)

    store.update_user(1, lambda user: setattr(user, "balance", 10))
    store.update_user(2, lambda user: setattr(user, "balance", 20))

    assert {user.id: user.balance for user in UserStore(path).load_users()} == {1: 10, 2: 20}


def test_taken_apartments_skips_current_user(store):
    store.save_users(
        [
            UserRecord(id=1, apartment="12, 45"),
            UserRecord(id=2, apartment="7"),
            UserRecord(id=3),
        ]
    )

    assert store.taken_apartments(exclude_id=1) == {"7"}
    assert store.taken_apartments() == {"12", "45", "7"}


def test_concurrent_updates_do_not_lose_increments(store):
    store.save_users([UserRecord(id=1), UserRecord(id=2)])

    def slow_increment(user):
        balance = user.balance
        time.sleep(0.001)
        user.balance = balance + 1

    def credit(user_id):
        store.update_user(user_id, slow_increment)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(credit, [1, 2] * 40))

    assert {user.id: user.balance for user in store.load_users()} == {1: 40, 2: 40}
