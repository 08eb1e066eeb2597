"""
Fermeture automatique des sessions des jours passés restées ouvertes.
"""
import logging
import threading
from datetime import date
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from config.database import SessionLocal
from models.daily_session import DailySession
from services.session_service import SessionService

logger = logging.getLogger(__name__)


def sweep_expired(db: Session, today: Optional[date] = None) -> int:
    """
    Ferme une à une les sessions ouvertes dont la date est passée.
    L'échec d'une fermeture n'interrompt pas les suivantes.
    Retourne le nombre de sessions fermées.
    """
    today = today or date.today()
    try:
        dates = [
            row.date_session
            for row in db.query(DailySession.date_session)
            .filter(DailySession.session_fermee.is_(False))
            .filter(DailySession.date_session < today)
            .order_by(DailySession.date_session.asc())
            .all()
        ]
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Erreur récupération des sessions ouvertes")
        return 0

    if not dates:
        return 0

    logger.info("%d session(s) à fermer automatiquement", len(dates))
    closed = 0
    for day in dates:
        if SessionService.close(db, day):
            closed += 1
    logger.info("Fermeture automatique terminée: %d/%d", closed, len(dates))
    return closed


class SessionSweeper:
    """
    Balayage périodique en tâche de fond (toutes les heures par défaut).
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        interval_seconds: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._interval_seconds = interval_seconds or settings.SESSION_SWEEP_INTERVAL_SECONDS
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start_background(self) -> None:
        if not settings.SESSION_SWEEP_ENABLED:
            logger.info("Balayage des sessions désactivé (SESSION_SWEEP_ENABLED)")
            return
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_loop, name="SessionSweeper", daemon=True)
        self._thread.start()
        logger.info("Balayage des sessions démarré (toutes les %ss)", self._interval_seconds)

    def stop_background(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)

    def run_once(self) -> int:
        db = self._session_factory()
        try:
            return sweep_expired(db)
        finally:
            db.close()

    def _run_loop(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Erreur pendant le balayage des sessions")
