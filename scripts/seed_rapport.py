"""
Opérations fictives dans la table rapport pour tester la caisse.
À ne pas lancer en production.
"""
import sys
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from config.database import SessionLocal, init_db
from models.rapport import MODE_CARTE, MODE_CHEQUE, MODE_ESPECE, MODE_VIREMENT, Rapport
from services.reconciliation_service import ReconciliationService


def main(day: date | None = None) -> None:
    init_db()
    day = day or date.today()
    debut = datetime.combine(day, time(8, 30))
    db = SessionLocal()
    try:
        operations = [
            dict(type="Terme", numero_contrat="AUT-2024-0001", assure="Ben Salah Mohamed", montant=Decimal("350.000"), mode_paiement=MODE_ESPECE),
            dict(type="Terme", numero_contrat="AUT-2024-0002", assure="Trabelsi Amel", montant=Decimal("173.400"), mode_paiement=MODE_ESPECE),
            dict(type="Crédit", numero_contrat="HAB-2023-0417", assure="Gharbi Sami", montant=Decimal("520.000"), mode_paiement=MODE_CHEQUE),
            dict(type="Terme", numero_contrat="SAN-2024-0110", assure="Jlassi Ines", montant=Decimal("96.500"), mode_paiement=MODE_CARTE),
            dict(type="Avance", numero_contrat="AUT-2022-0931", assure="Mejri Karim", montant=Decimal("1200.000"), mode_paiement=MODE_VIREMENT),
        ]
        for i, op in enumerate(operations):
            db.add(
                Rapport(
                    date_operation=day,
                    created_at=debut + timedelta(minutes=45 * i),
                    **op,
                )
            )
        db.commit()
        print(f"✅ {len(operations)} opérations créées pour le {day:%d/%m/%Y}")
        total = ReconciliationService.compute_cash_total(db, day)
        print(f"  -> Total espèce du jour: {total} DT")
    finally:
        db.close()


if __name__ == "__main__":
    main()
