"""
Service d'authentification et de contrôle d'accès à la caisse.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import streamlit as st
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.users import UserAccount, UserDirectory, load_user_directory
from services.local_session import BrowserCookieStorage, LocalSessionCache, LocalSessionRecord
from services.session_cleanup import sweep_expired
from services.session_service import SessionService

logger = logging.getLogger(__name__)

MSG_INVALID_CREDENTIALS = "Nom d'utilisateur ou mot de passe incorrect"
MSG_SESSION_CLOSED = "Session fermée pour aujourd'hui. Veuillez réessayer demain."
MSG_CREATE_FAILED = "Erreur lors de la création de la session"
MSG_AUTH_ERROR = "Erreur lors de l'authentification"
MSG_SESSION_EXPIRED = "Votre session a expiré (minuit). Veuillez vous reconnecter."


class LoginOutcome(str, enum.Enum):
    OK = "ok"
    INVALID_CREDENTIALS = "invalid_credentials"
    SESSION_CLOSED = "session_closed"
    ERROR = "error"
    ANONYMOUS = "anonymous"


@dataclass
class AuthResult:
    success: bool
    message: str
    outcome: LoginOutcome
    user: Optional[UserAccount] = None
    session_exists: Optional[bool] = None


class AuthService:
    """
    Valide les identifiants, applique la règle « une session par jour » et
    tient la session locale de l'utilisateur connecté.

    L'administrateur n'est jamais soumis à la session quotidienne: il ne la
    crée pas, ne la ferme pas et peut se connecter même si elle est fermée.
    """

    def __init__(
        self,
        users: UserDirectory,
        cache: LocalSessionCache,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.users = users
        self.cache = cache
        self.clock = clock

    def is_admin(self, username: str) -> bool:
        return self.users.is_admin(username)

    def authenticate(self, db: Session, username: str, password: str) -> AuthResult:
        user = self.users.authenticate(username, password)
        if user is None:
            return AuthResult(False, MSG_INVALID_CREDENTIALS, LoginOutcome.INVALID_CREDENTIALS)

        try:
            today = self.clock().date()
            # Les sessions des jours précédents sont fermées avant toute décision
            sweep_expired(db, today)

            if user.is_admin:
                self.cache.save(user.username)
                logger.info("Connexion administrateur: %s", user.username)
                return AuthResult(
                    True,
                    f"Bienvenue {user.username} (Admin)",
                    LoginOutcome.OK,
                    user=user,
                    session_exists=False,
                )

            status = SessionService.check_status(db, today)
            if status.failed or (status.exists and status.is_closed):
                logger.info("Connexion refusée pour %s: session du %s fermée", username, today)
                return AuthResult(
                    False,
                    MSG_SESSION_CLOSED,
                    LoginOutcome.SESSION_CLOSED,
                    session_exists=status.exists,
                )

            if not status.exists:
                if not SessionService.create(db, today, user.username):
                    return AuthResult(
                        False, MSG_CREATE_FAILED, LoginOutcome.ERROR, session_exists=False
                    )
                message = "Bienvenue - Nouvelle session créée"
            else:
                message = "Bienvenue - Session déjà ouverte"

            self.cache.save(user.username)
            logger.info("Connexion de %s (session du %s)", user.username, today)
            return AuthResult(True, message, LoginOutcome.OK, user=user, session_exists=status.exists)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur authentification de %s", username)
            return AuthResult(False, MSG_AUTH_ERROR, LoginOutcome.ERROR)

    def restore(self, db: Session) -> AuthResult:
        """
        Reconnexion automatique au démarrage à partir de la session locale.
        """
        sweep_expired(db, self.clock().date())

        record = self.cache.peek()
        if record is None:
            return AuthResult(False, "", LoginOutcome.ANONYMOUS)

        if self.cache.is_stale(record):
            self.cache.clear()
            logger.info("Session locale de %s expirée, déconnexion", record.username)
            return AuthResult(False, MSG_SESSION_EXPIRED, LoginOutcome.SESSION_CLOSED)

        if not record.is_active or self.users.get(record.username) is None:
            self.cache.clear()
            return AuthResult(False, "", LoginOutcome.ANONYMOUS)

        user = self.users.get(record.username)
        if user.is_admin:
            return AuthResult(
                True, f"Bienvenue {user.username} (Admin) - Session réactivée", LoginOutcome.OK, user=user
            )

        status = SessionService.check_status(db, self.clock().date())
        if status.is_closed:
            self.cache.clear()
            return AuthResult(
                False, MSG_SESSION_CLOSED, LoginOutcome.SESSION_CLOSED, session_exists=status.exists
            )
        return AuthResult(
            True, "Bienvenue - Session réactivée", LoginOutcome.OK, user=user, session_exists=True
        )

    def logout(self, db: Session, username: str) -> bool:
        """
        L'administrateur garde la session du jour ouverte; pour les autres
        utilisateurs la session est fermée avec son total espèce final.
        La session locale est effacée dans tous les cas.
        """
        if self.is_admin(username):
            logger.info("%s se déconnecte - session globale maintenue", username)
            self.cache.clear()
            return True

        # Date de connexion, même si la session locale a passé minuit
        record = self.cache.peek()
        session_date = record.login_time.date() if record else self.clock().date()
        try:
            closed = SessionService.close_with_final_total(db, username, session_date)
        finally:
            self.cache.clear()
        return closed

    # ----- État courant -----

    def current_record(self) -> Optional[LocalSessionRecord]:
        return self.cache.get()

    def current_user(self) -> Optional[UserAccount]:
        record = self.cache.get()
        if record is None:
            return None
        return self.users.get(record.username)

    def is_authenticated(self) -> bool:
        return self.current_user() is not None


@st.cache_resource
def _user_directory() -> UserDirectory:
    return load_user_directory()


def get_auth_service() -> AuthService:
    """
    Service lié au cookie de session du navigateur.
    Envoie au passage les écritures de cookie laissées par l'exécution précédente
    (une connexion ou une déconnexion est suivie d'un st.rerun).
    """
    users = _user_directory()
    storage = BrowserCookieStorage()
    storage.flush()
    return AuthService(users=users, cache=LocalSessionCache(storage, users))


def sync_browser_session(auth: AuthService) -> None:
    """Envoie au navigateur les écritures de cookie de l'exécution courante."""
    storage = auth.cache.storage
    if isinstance(storage, BrowserCookieStorage):
        storage.flush()


def require_auth() -> AuthService:
    """
    Garantit que l'utilisateur est connecté.
    Sinon, affiche un message et interrompt l'exécution de la page.
    """
    auth = get_auth_service()
    if not auth.is_authenticated():
        st.warning("Vous devez vous connecter pour accéder à cette page.")
        st.stop()
    return auth


def require_admin() -> AuthService:
    auth = require_auth()
    user = auth.current_user()
    if not user or not user.is_admin:
        st.error("Vous n'avez pas la permission d'accéder à cette fonctionnalité.")
        st.stop()
    return auth
