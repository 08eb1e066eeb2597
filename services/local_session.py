"""
Session locale de l'utilisateur connecté (côté navigateur).

Distincte de la session de caisse en base: elle indique seulement qui est
connecté sur ce poste. Pour les utilisateurs normaux elle expire à minuit;
celle de l'administrateur n'expire pas.
"""
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Protocol
from urllib.parse import quote, unquote

import streamlit as st
import streamlit.components.v1 as components

from config import settings
from config.users import UserDirectory

logger = logging.getLogger(__name__)

SESSION_KEY = "session"


class SessionStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """Stockage en mémoire (tests, scripts)."""

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class BrowserCookieStorage:
    """
    Stockage dans un cookie du navigateur: survit au rechargement de la page,
    aux nouveaux onglets et au redémarrage du serveur.

    Les cookies reçus à l'ouverture de la session Streamlit sont lus via
    st.context.cookies. Les écritures sont gardées dans st.session_state
    (relues aussitôt) puis envoyées au navigateur par flush().
    """

    OVERLAY_KEY = "_cookies_overlay"
    PENDING_KEY = "_cookies_pending"

    def __init__(self, max_age_seconds: int = settings.SESSION_COOKIE_MAX_AGE_SECONDS):
        self.max_age_seconds = max_age_seconds

    def _overlay(self) -> dict:
        return st.session_state.setdefault(self.OVERLAY_KEY, {})

    def _queue(self, key: str, value: Optional[str]) -> None:
        self._overlay()[key] = value
        st.session_state.setdefault(self.PENDING_KEY, {})[key] = value

    def get(self, key: str) -> Optional[str]:
        overlay = self._overlay()
        if key in overlay:
            return overlay[key]
        raw = st.context.cookies.get(key)
        return unquote(raw) if raw else None

    def set(self, key: str, value: str) -> None:
        self._queue(key, value)

    def remove(self, key: str) -> None:
        self._queue(key, None)

    def flush(self) -> None:
        """Écrit dans le navigateur les cookies modifiés depuis le dernier appel."""
        pending = st.session_state.pop(self.PENDING_KEY, None)
        if not pending:
            return
        script = "".join(
            f"window.parent.document.cookie = {json.dumps(cookie_header(key, value, self.max_age_seconds))};"
            for key, value in pending.items()
        )
        components.html(f"<script>{script}</script>", height=0)


def cookie_header(key: str, value: Optional[str], max_age_seconds: int) -> str:
    """Chaîne pour document.cookie; une valeur None supprime le cookie."""
    if value is None:
        return f"{key}=; Path=/; Max-Age=0; SameSite=Strict"
    return f"{key}={quote(value, safe='')}; Path=/; Max-Age={max_age_seconds}; SameSite=Strict"


@dataclass
class LocalSessionRecord:
    username: str
    login_time: datetime
    is_active: bool = True

    def to_json(self) -> str:
        return json.dumps(
            {
                "username": self.username,
                "loginTime": int(self.login_time.timestamp() * 1000),
                "isActive": self.is_active,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> "LocalSessionRecord":
        data = json.loads(raw)
        return cls(
            username=data["username"],
            login_time=datetime.fromtimestamp(data["loginTime"] / 1000),
            is_active=bool(data.get("isActive", False)),
        )


class LocalSessionCache:
    def __init__(
        self,
        storage: SessionStorage,
        users: UserDirectory,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.storage = storage
        self.users = users
        self.clock = clock

    def save(self, username: str) -> LocalSessionRecord:
        record = LocalSessionRecord(username=username, login_time=self.clock(), is_active=True)
        self.storage.set(SESSION_KEY, record.to_json())
        return record

    def peek(self) -> Optional[LocalSessionRecord]:
        """Lit l'enregistrement tel quel, sans contrôle d'expiration."""
        raw = self.storage.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return LocalSessionRecord.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.warning("Session locale illisible, suppression")
            self.clear()
            return None

    def is_stale(self, record: LocalSessionRecord) -> bool:
        if self.users.is_admin(record.username):
            return False
        return record.login_time.date() != self.clock().date()

    def get(self) -> Optional[LocalSessionRecord]:
        record = self.peek()
        if record is None:
            return None
        if self.is_stale(record):
            logger.info("Session locale de %s expirée (minuit)", record.username)
            self.clear()
            return None
        return record if record.is_active else None

    def clear(self) -> None:
        self.storage.remove(SESSION_KEY)

    def session_date(self) -> date:
        """Date de connexion de la session en cours, ou aujourd'hui."""
        record = self.get()
        if record is None:
            return self.clock().date()
        return record.login_time.date()
