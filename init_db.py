"""
Script d'initialisation de la base de données de la caisse.
- Crée toutes les tables
- Ferme les sessions des jours passés restées ouvertes
"""
from config.database import SessionLocal, init_db
from config.logging_config import configure_logging
from services.session_cleanup import sweep_expired


def main() -> None:
    configure_logging()
    print("📦 Initialisation de la base de données...")
    init_db()
    print("✅ Tables créées (si elles n'existaient pas).")

    db = SessionLocal()
    try:
        fermees = sweep_expired(db)
        print(f"ℹ️ {fermees} session(s) expirée(s) fermée(s).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
