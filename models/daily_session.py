from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, UniqueConstraint

from config.database import Base

STATUT_NON_VERSE = "Non versé"
STATUT_VERSE = "Versé"

BANQUES = ("ATTIJARI", "BIAT")


class DailySession(Base):
    """
    Session de caisse quotidienne, partagée par tous les utilisateurs.
    Une seule ligne par date_session; session_fermee=True est définitif pour la date.
    """

    __tablename__ = "sessions"
    __table_args__ = (UniqueConstraint("date_session", name="uq_sessions_date_session"),)

    id = Column(Integer, primary_key=True, index=True)
    date_session = Column(Date, nullable=False, index=True)
    total_espece = Column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    versement = Column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    date_versement = Column(Date, nullable=True)
    charges = Column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    banque = Column(String(50), nullable=True)
    statut = Column(String(20), nullable=False, default=STATUT_NON_VERSE)  # Non versé / Versé
    cree_par = Column(String(50), nullable=False)
    session_fermee = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    @property
    def net_espece(self) -> Decimal:
        """Espèces de la journée après déduction des charges."""
        return Decimal(self.total_espece or 0) - Decimal(self.charges or 0)

    @property
    def solde(self) -> Decimal:
        """Écart entre le versement en banque et le net espèce."""
        return Decimal(self.versement or 0) - self.net_espece
