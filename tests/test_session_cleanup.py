from datetime import date

from models.daily_session import DailySession
from services.session_cleanup import SessionSweeper, sweep_expired
from services.session_service import SessionService

TODAY = date(2024, 3, 10)


def _open_past_sessions(db, today):
    return (
        db.query(DailySession)
        .filter(DailySession.session_fermee.is_(False))
        .filter(DailySession.date_session < today)
        .count()
    )


def test_sweep_closes_past_open_sessions(db, add_session):
    add_session(date(2024, 3, 8))
    add_session(date(2024, 3, 9))
    add_session(date(2024, 3, 7), session_fermee=True)
    today_session = add_session(TODAY)

    assert sweep_expired(db, TODAY) == 2

    db.expire_all()
    assert _open_past_sessions(db, TODAY) == 0
    assert db.get(DailySession, today_session.id).session_fermee is False


def test_sweep_is_idempotent(db, add_session):
    add_session(date(2024, 3, 9))

    assert sweep_expired(db, TODAY) == 1
    assert sweep_expired(db, TODAY) == 0


def test_sweep_continues_after_a_failed_close(db, add_session, monkeypatch):
    add_session(date(2024, 3, 7))
    add_session(date(2024, 3, 8))
    add_session(date(2024, 3, 9))

    real_close = SessionService.close
    attempts = []

    def flaky_close(db_, day):
        attempts.append(day)
        if day == date(2024, 3, 8):
            return False
        return real_close(db_, day)

    monkeypatch.setattr(SessionService, "close", staticmethod(flaky_close))

    assert sweep_expired(db, TODAY) == 2
    assert attempts == [date(2024, 3, 7), date(2024, 3, 8), date(2024, 3, 9)]

    db.expire_all()
    still_open = db.query(DailySession).filter(DailySession.session_fermee.is_(False)).all()
    assert [s.date_session for s in still_open] == [date(2024, 3, 8)]


def test_sweep_on_unreachable_database(failing_db):
    assert sweep_expired(failing_db, TODAY) == 0


def test_sweeper_run_once_uses_its_own_session(db, add_session, session_factory):
    add_session(date(2000, 1, 1))
    sweeper = SessionSweeper(session_factory=session_factory, interval_seconds=3600)

    assert sweeper.run_once() == 1
    assert sweeper.running is False


def test_sweeper_background_thread_stops(session_factory, monkeypatch):
    monkeypatch.setattr("config.settings.SESSION_SWEEP_ENABLED", True)
    sweeper = SessionSweeper(session_factory=session_factory, interval_seconds=3600)

    sweeper.start_background()
    assert sweeper.running is True

    sweeper.stop_background()
    assert sweeper.running is False


def test_sweeper_disabled_by_settings(session_factory, monkeypatch):
    monkeypatch.setattr("config.settings.SESSION_SWEEP_ENABLED", False)
    sweeper = SessionSweeper(session_factory=session_factory, interval_seconds=3600)

    sweeper.start_background()

    assert sweeper.running is False
