from datetime import date, datetime

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String

from config.database import Base

MODE_ESPECE = "Espece"
MODE_CHEQUE = "Cheque"
MODE_CARTE = "Carte Bancaire"
MODE_VIREMENT = "Virement"

MODES_PAIEMENT = (MODE_ESPECE, MODE_CHEQUE, MODE_CARTE, MODE_VIREMENT)


class Rapport(Base):
    """
    Journal des opérations encaissées (paiements de police, crédits, chèques...).
    Source de vérité pour le total espèce d'une journée; la caisse ne fait que le lire.
    """

    __tablename__ = "rapport"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=True)  # Terme, Crédit, Avance...
    numero_contrat = Column(String(50), nullable=True, index=True)
    assure = Column(String(150), nullable=True)
    montant = Column(Numeric(12, 3), nullable=False, default=0)
    mode_paiement = Column(String(20), nullable=False, default=MODE_ESPECE)
    date_operation = Column(Date, nullable=False, default=date.today)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)
