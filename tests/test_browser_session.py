import json
import re
from datetime import datetime
from types import SimpleNamespace

import pytest

from services import local_session
from services.auth_service import MSG_SESSION_EXPIRED, AuthService, LoginOutcome, sync_browser_session
from services.local_session import SESSION_KEY, BrowserCookieStorage, LocalSessionCache, cookie_header

COOKIE_WRITE = re.compile(r"window\.parent\.document\.cookie = (\".*?\");")


class FakeBrowser:
    """Navigateur minimal: applique les écritures document.cookie à un cookie jar."""

    def __init__(self, monkeypatch):
        self.monkeypatch = monkeypatch
        self.jar = {}
        self.scripts = []
        monkeypatch.setattr(local_session, "components", SimpleNamespace(html=self.html))
        self.new_tab()

    def new_tab(self):
        """Nouvelle session Streamlit: session_state vide, cookies envoyés par le navigateur."""
        self.monkeypatch.setattr(
            local_session,
            "st",
            SimpleNamespace(session_state={}, context=SimpleNamespace(cookies=dict(self.jar))),
        )

    def html(self, body, height=None):
        self.scripts.append(body)
        for literal in COOKIE_WRITE.findall(body):
            header = json.loads(literal)
            pair, _, attributes = header.partition(";")
            name, _, value = pair.partition("=")
            if "Max-Age=0" in attributes:
                self.jar.pop(name, None)
            else:
                self.jar[name] = value


@pytest.fixture
def browser(monkeypatch):
    return FakeBrowser(monkeypatch)


@pytest.fixture
def cookie_auth(users, clock, browser):
    def _build():
        cache = LocalSessionCache(BrowserCookieStorage(max_age_seconds=3600), users, clock=clock)
        return AuthService(users=users, cache=cache, clock=clock)

    return _build


def test_cookie_header():
    assert cookie_header("session", '{"a": 1}', 60) == (
        "session=%7B%22a%22%3A%201%7D; Path=/; Max-Age=60; SameSite=Strict"
    )
    assert cookie_header("session", None, 60) == "session=; Path=/; Max-Age=0; SameSite=Strict"


def test_write_is_visible_before_flush(browser):
    storage = BrowserCookieStorage()
    storage.set(SESSION_KEY, '{"username": "Ahlem"}')

    assert storage.get(SESSION_KEY) == '{"username": "Ahlem"}'
    assert browser.scripts == []

    storage.remove(SESSION_KEY)
    assert storage.get(SESSION_KEY) is None


def test_flush_sends_pending_writes_once(browser):
    storage = BrowserCookieStorage()
    storage.set(SESSION_KEY, '{"username": "Ahlem"}')

    storage.flush()
    storage.flush()

    assert len(browser.scripts) == 1
    assert SESSION_KEY in browser.jar


def test_value_survives_a_new_tab(browser):
    storage = BrowserCookieStorage()
    storage.set(SESSION_KEY, '{"username": "Islem", "isActive": true}')
    storage.flush()

    browser.new_tab()

    assert BrowserCookieStorage().get(SESSION_KEY) == '{"username": "Islem", "isActive": true}'


def test_removed_cookie_is_gone_in_a_new_tab(browser):
    storage = BrowserCookieStorage()
    storage.set(SESSION_KEY, "x")
    storage.flush()
    storage.remove(SESSION_KEY)
    storage.flush()

    browser.new_tab()

    assert BrowserCookieStorage().get(SESSION_KEY) is None


def test_login_is_restored_after_reload(db, browser, cookie_auth):
    auth = cookie_auth()
    assert auth.authenticate(db, "Ahlem", "123").success is True
    auth.cache.storage.flush()

    browser.new_tab()
    reloaded = cookie_auth()
    result = reloaded.restore(db)

    assert result.success is True
    assert result.outcome == LoginOutcome.OK
    assert reloaded.current_user().username == "Ahlem"


def test_reload_after_midnight_expires_the_cookie(db, browser, cookie_auth, clock):
    auth = cookie_auth()
    auth.authenticate(db, "Ahlem", "123")
    auth.cache.storage.flush()

    clock.now = datetime(2024, 3, 11, 8, 0)
    browser.new_tab()
    reloaded = cookie_auth()
    result = reloaded.restore(db)
    reloaded.cache.storage.flush()

    assert result.success is False
    assert result.message == MSG_SESSION_EXPIRED
    assert SESSION_KEY not in browser.jar


def test_admin_cookie_survives_days(db, browser, cookie_auth, clock):
    auth = cookie_auth()
    auth.authenticate(db, "Hamza", "007H")
    auth.cache.storage.flush()

    clock.now = datetime(2024, 3, 20, 9, 0)
    browser.new_tab()
    reloaded = cookie_auth()

    assert reloaded.restore(db).success is True
    assert reloaded.current_user().is_admin is True


def test_logout_removes_the_cookie(db, browser, cookie_auth):
    auth = cookie_auth()
    auth.authenticate(db, "Islem", "456")
    auth.cache.storage.flush()

    auth.logout(db, "Islem")
    auth.cache.storage.flush()

    browser.new_tab()
    assert cookie_auth().restore(db).outcome == LoginOutcome.ANONYMOUS


def test_sync_browser_session_flushes_cookie_writes(db, browser, cookie_auth):
    auth = cookie_auth()
    auth.authenticate(db, "Ahlem", "123")

    sync_browser_session(auth)

    assert SESSION_KEY in browser.jar
