"""
Rapprochement du total espèce des sessions avec la table rapport.

La table rapport est la source de vérité; sessions.total_espece n'en est qu'un
cache, mis à jour à la fermeture et corrigé ici.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.daily_session import DailySession
from models.rapport import MODE_CARTE, MODE_CHEQUE, MODE_ESPECE, MODE_VIREMENT, Rapport

logger = logging.getLogger(__name__)

CASH_MODE = MODE_ESPECE
TOLERANCE = Decimal("0.01")
ZERO = Decimal("0")


@dataclass
class Discrepancy:
    session_id: int
    date_session: date
    current_total: Decimal
    calculated_total: Decimal
    difference: Decimal


@dataclass
class TransactionSummary:
    transactions: List[Rapport] = field(default_factory=list)
    espece: Decimal = ZERO
    cheque: Decimal = ZERO
    carte: Decimal = ZERO
    virement: Decimal = ZERO
    total_general: Decimal = ZERO


def _to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[day 00:00, day+1 00:00)"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class ReconciliationService:
    """
    Calcul du total espèce d'une journée et synchronisation du cache des sessions.
    """

    @staticmethod
    def _sum_cash(db: Session, day: date) -> Decimal:
        start, end = day_bounds(day)
        total = (
            db.query(func.coalesce(func.sum(Rapport.montant), 0))
            .filter(Rapport.created_at >= start)
            .filter(Rapport.created_at < end)
            .filter(Rapport.mode_paiement == CASH_MODE)
            .scalar()
        )
        return _to_decimal(total)

    @staticmethod
    def compute_cash_total(db: Session, day: date) -> Decimal:
        """
        Somme des montants en espèces enregistrés dans rapport pour la date.
        Retourne 0 en cas d'erreur (valeur informative).
        """
        try:
            total = ReconciliationService._sum_cash(db, day)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors du calcul du total espèce pour %s", day)
            return ZERO
        logger.debug("Total espèce calculé: %s DT pour %s", total, day)
        return total

    @staticmethod
    def verify_and_sync(db: Session) -> int:
        """
        Recalcule le total espèce de chaque session et corrige les écarts
        supérieurs à la tolérance. Retourne le nombre de sessions corrigées.
        Ne touche ni session_fermee, ni versement, ni statut.
        """
        try:
            rows = db.query(
                DailySession.id, DailySession.date_session, DailySession.total_espece
            ).all()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur lors de la récupération des sessions à vérifier")
            return 0

        logger.info("%d sessions à vérifier", len(rows))
        corrected = 0
        for session_id, date_session, stored_total in rows:
            try:
                calculated = ReconciliationService._sum_cash(db, date_session)
            except SQLAlchemyError:
                # Pas de correction ce cycle-ci: on ne remplace pas un total par 0
                db.rollback()
                logger.exception("Session %s: total non recalculé, correction ignorée", session_id)
                continue

            stored = _to_decimal(stored_total)
            if abs(calculated - stored) <= TOLERANCE:
                continue

            try:
                db.query(DailySession).filter(DailySession.id == session_id).update(
                    {DailySession.total_espece: calculated}, synchronize_session=False
                )
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("Erreur mise à jour session %s", session_id)
                continue
            corrected += 1
            logger.info("Correction session %s: %s -> %s DT", session_id, stored, calculated)

        logger.info("Synchronisation des totaux espèce terminée (%d corrigée(s))", corrected)
        return corrected

    @staticmethod
    def verify_single(db: Session, session_id: int, day: date) -> Optional[Discrepancy]:
        """
        Compare une session au total recalculé, sans rien écrire.
        Retourne None si les totaux concordent, si la session n'existe pas
        ou si la vérification échoue.
        """
        try:
            row = (
                db.query(DailySession.total_espece)
                .filter(DailySession.id == session_id)
                .first()
            )
            if row is None:
                logger.warning("Session %s introuvable, vérification ignorée", session_id)
                return None
            calculated = ReconciliationService._sum_cash(db, day)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur vérification session %s", session_id)
            return None

        current = _to_decimal(row.total_espece)
        if abs(calculated - current) <= TOLERANCE:
            return None
        logger.warning(
            "Session %s: incohérence détectée (%s enregistré, %s calculé)",
            session_id,
            current,
            calculated,
        )
        return Discrepancy(
            session_id=session_id,
            date_session=day,
            current_total=current,
            calculated_total=calculated,
            difference=calculated - current,
        )

    @staticmethod
    def verify_many(db: Session, sessions: Iterable[DailySession]) -> List[Discrepancy]:
        discrepancies = []
        for session in sessions:
            result = ReconciliationService.verify_single(db, session.id, session.date_session)
            if result is not None:
                discrepancies.append(result)
        return discrepancies

    @staticmethod
    def transactions_detail(db: Session, day: date) -> TransactionSummary:
        """
        Opérations de la journée et totaux par mode de paiement.
        """
        start, end = day_bounds(day)
        try:
            rows = (
                db.query(Rapport)
                .filter(Rapport.created_at >= start)
                .filter(Rapport.created_at < end)
                .order_by(Rapport.created_at.asc())
                .all()
            )
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Erreur récupération détail transactions pour %s", day)
            return TransactionSummary()

        def total_for(mode: str) -> Decimal:
            return sum((_to_decimal(r.montant) for r in rows if r.mode_paiement == mode), ZERO)

        return TransactionSummary(
            transactions=rows,
            espece=total_for(MODE_ESPECE),
            cheque=total_for(MODE_CHEQUE),
            carte=total_for(MODE_CARTE),
            virement=total_for(MODE_VIREMENT),
            total_general=sum((_to_decimal(r.montant) for r in rows), ZERO),
        )
