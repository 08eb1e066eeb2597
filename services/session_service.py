"""
Session de caisse quotidienne: existence, création, fermeture, versement.

Cycle de vie par date: absente -> ouverte (session_fermee=False) -> fermée.
La fermeture est définitive; aucune opération ne rouvre une session.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models.daily_session import STATUT_NON_VERSE, STATUT_VERSE, DailySession
from services.reconciliation_service import ZERO, ReconciliationService

logger = logging.getLogger(__name__)


@dataclass
class SessionStatus:
    exists: bool
    is_closed: bool
    opened_by: Optional[str] = None
    record: Optional[DailySession] = None
    # True quand la lecture elle-même a échoué (considérée comme fermée)
    failed: bool = False


@dataclass
class StatutTotals:
    count: int = 0
    total: Decimal = ZERO


@dataclass
class MonthlyStats:
    non_versees: StatutTotals
    versees: StatutTotals
    total_charges: Decimal


@dataclass
class FortnightCharges:
    premiere: Decimal
    deuxieme: Decimal

    @property
    def total(self) -> Decimal:
        return self.premiere + self.deuxieme


def _dec(value) -> Decimal:
    return Decimal(str(value)) if value is not None else ZERO


class SessionService:
    """
    Accès à la table sessions. Chaque opération attrape les erreurs de base,
    les journalise et retourne une valeur sûre.
    """

    @staticmethod
    def check_status(db: Session, day: date) -> SessionStatus:
        """
        Une session absente est rapportée comme fermée (exists=False, is_closed=True),
        de même qu'une erreur de lecture.
        """
        try:
            record = db.query(DailySession).filter(DailySession.date_session == day).one_or_none()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur vérification session du %s", day)
            return SessionStatus(exists=False, is_closed=True, failed=True)

        if record is None:
            return SessionStatus(exists=False, is_closed=True)
        return SessionStatus(
            exists=True,
            is_closed=bool(record.session_fermee),
            opened_by=record.cree_par,
            record=record,
        )

    @staticmethod
    def create(db: Session, day: date, username: str) -> bool:
        """
        Ouvre la session du jour. Échoue si une ligne existe déjà pour la date
        (contrainte d'unicité); l'appelant vérifie l'état avant.
        """
        session = DailySession(
            date_session=day,
            total_espece=ZERO,
            versement=ZERO,
            date_versement=None,
            charges=ZERO,
            banque=None,
            statut=STATUT_NON_VERSE,
            cree_par=username,
            session_fermee=False,
        )
        try:
            db.add(session)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("Session du %s déjà existante, création refusée", day)
            return False
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur création session du %s", day)
            return False

        logger.info("Nouvelle session créée pour %s par %s", day, username)
        return True

    @staticmethod
    def close(db: Session, day: date) -> bool:
        try:
            updated = (
                db.query(DailySession)
                .filter(DailySession.date_session == day)
                .update({DailySession.session_fermee: True}, synchronize_session="fetch")
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur fermeture session du %s", day)
            return False

        if not updated:
            logger.warning("Aucune session à fermer pour %s", day)
            return False
        logger.info("Session fermée pour %s", day)
        return True

    @staticmethod
    def record_deposit(
        db: Session,
        session_id: int,
        versement: Decimal,
        date_versement: date,
        banque: str,
        charges: Decimal,
    ) -> bool:
        """
        Enregistre le versement bancaire d'une session et la passe en « Versé ».
        """
        try:
            updated = (
                db.query(DailySession)
                .filter(DailySession.id == session_id)
                .update(
                    {
                        DailySession.versement: _dec(versement),
                        DailySession.date_versement: date_versement,
                        DailySession.banque: banque,
                        DailySession.charges: _dec(charges),
                        DailySession.statut: STATUT_VERSE,
                    },
                    synchronize_session="fetch",
                )
            )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur mise à jour versement de la session %s", session_id)
            return False

        if not updated:
            logger.warning("Session %s introuvable pour le versement", session_id)
            return False
        logger.info("Versement mis à jour pour la session %s", session_id)
        return True

    @staticmethod
    def close_with_final_total(db: Session, username: str, day: date) -> bool:
        """
        Fermeture de fin de journée: recalcule le total espèce puis ferme la
        session existante, ou insère directement une session fermée.
        """
        total_espece = ReconciliationService.compute_cash_total(db, day)
        try:
            existing = db.query(DailySession).filter(DailySession.date_session == day).one_or_none()
            if existing is not None:
                existing.total_espece = total_espece
                existing.session_fermee = True
                existing.cree_par = username
            else:
                db.add(
                    DailySession(
                        date_session=day,
                        total_espece=total_espece,
                        versement=ZERO,
                        date_versement=None,
                        charges=ZERO,
                        banque=None,
                        statut=STATUT_NON_VERSE,
                        cree_par=username,
                        session_fermee=True,
                    )
                )
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de l'enregistrement de la session du %s", day)
            return False

        logger.info("Session du %s fermée par %s (total espèce %s DT)", day, username, total_espece)
        return True

    # ----- Lectures -----

    @staticmethod
    def get_by_date(db: Session, day: date) -> Optional[DailySession]:
        try:
            return db.query(DailySession).filter(DailySession.date_session == day).one_or_none()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur récupération session du %s", day)
            return None

    @staticmethod
    def get_today(db: Session, today: Optional[date] = None) -> Optional[DailySession]:
        return SessionService.get_by_date(db, today or date.today())

    @staticmethod
    def is_today_open(db: Session, today: Optional[date] = None) -> bool:
        """Vrai seulement si la session du jour existe et n'est pas fermée."""
        status = SessionService.check_status(db, today or date.today())
        return status.exists and not status.is_closed

    @staticmethod
    def list_recent(db: Session, limit: int = 15) -> List[DailySession]:
        try:
            return (
                db.query(DailySession)
                .order_by(DailySession.date_session.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur récupération sessions récentes")
            return []

    @staticmethod
    def list_by_range(db: Session, start: date, end: date) -> List[DailySession]:
        try:
            return (
                db.query(DailySession)
                .filter(DailySession.date_session >= start)
                .filter(DailySession.date_session <= end)
                .order_by(DailySession.date_session.desc())
                .all()
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur récupération sessions du %s au %s", start, end)
            return []

    @staticmethod
    def monthly_stats(db: Session, month: int, year: int) -> Optional[MonthlyStats]:
        """
        Sessions non versées (total espèce) et versées (versement) du mois,
        plus le total des charges.
        """
        start = date(year, month, 1)
        end = start + relativedelta(months=1, days=-1)
        try:
            sessions = (
                db.query(DailySession)
                .filter(DailySession.date_session >= start)
                .filter(DailySession.date_session <= end)
                .all()
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur récupération stats mensuelles %02d/%d", month, year)
            return None

        non_versees = [s for s in sessions if s.statut == STATUT_NON_VERSE]
        versees = [s for s in sessions if s.statut == STATUT_VERSE]
        return MonthlyStats(
            non_versees=StatutTotals(
                count=len(non_versees),
                total=sum((_dec(s.total_espece) for s in non_versees), ZERO),
            ),
            versees=StatutTotals(
                count=len(versees),
                total=sum((_dec(s.versement) for s in versees), ZERO),
            ),
            total_charges=sum((_dec(s.charges) for s in sessions), ZERO),
        )

    @staticmethod
    def fortnight_charges(sessions: Iterable[DailySession], month: int, year: int) -> FortnightCharges:
        """Charges du 1 au 15 et du 16 à la fin du mois."""
        premiere = ZERO
        deuxieme = ZERO
        for s in sessions:
            d = s.date_session
            if d.month != month or d.year != year:
                continue
            if d.day <= 15:
                premiere += _dec(s.charges)
            else:
                deuxieme += _dec(s.charges)
        return FortnightCharges(premiere=premiere, deuxieme=deuxieme)
