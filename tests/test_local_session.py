import json
from datetime import date, datetime

from services.local_session import SESSION_KEY, LocalSessionRecord


def test_save_writes_json_record(cache, storage, clock):
    cache.save("Ahlem")

    data = json.loads(storage.get(SESSION_KEY))
    assert data["username"] == "Ahlem"
    assert data["isActive"] is True
    assert data["loginTime"] == int(clock.now.timestamp() * 1000)


def test_record_present_same_day(cache, clock):
    cache.save("Ahlem")
    clock.now = datetime(2024, 3, 10, 23, 59)

    record = cache.get()

    assert record is not None
    assert record.username == "Ahlem"
    assert record.login_time == datetime(2024, 3, 10, 9, 0)


def test_non_admin_record_expires_at_midnight(cache, storage, clock):
    cache.save("Islem")
    clock.now = datetime(2024, 3, 11, 0, 0, 1)

    assert cache.get() is None
    assert storage.get(SESSION_KEY) is None


def test_admin_record_never_expires(cache, clock):
    cache.save("Hamza")
    clock.now = datetime(2024, 4, 2, 8, 0)

    record = cache.get()
    assert record is not None
    assert record.username == "Hamza"


def test_inactive_record_is_absent(cache, storage):
    record = LocalSessionRecord("Ahlem", datetime(2024, 3, 10, 9, 0), is_active=False)
    storage.set(SESSION_KEY, record.to_json())

    assert cache.get() is None


def test_unreadable_record_is_cleared(cache, storage):
    storage.set(SESSION_KEY, "{pas du json")

    assert cache.get() is None
    assert storage.get(SESSION_KEY) is None


def test_clear_removes_record(cache, storage):
    cache.save("Ahlem")
    cache.clear()

    assert storage.get(SESSION_KEY) is None
    assert cache.get() is None


def test_session_date_follows_login_day(cache, clock):
    assert cache.session_date() == date(2024, 3, 10)

    cache.save("Hamza")
    clock.now = datetime(2024, 3, 12, 10, 0)

    assert cache.session_date() == date(2024, 3, 10)


def test_peek_does_not_check_expiry(cache, clock):
    cache.save("Ahlem")
    clock.now = datetime(2024, 3, 11, 8, 0)

    assert cache.peek().username == "Ahlem"
    assert cache.is_stale(cache.peek()) is True
