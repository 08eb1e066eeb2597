"""
Paramètres de l'application lus depuis l'environnement (.env).
"""
import os

from dotenv import load_dotenv

from config.database import PROJECT_ROOT

env_path = PROJECT_ROOT / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "oui")


APP_TITLE = os.getenv("APP_TITLE", "Agence - Caisse")

# Balayage des sessions expirées (toutes les heures par défaut)
SESSION_SWEEP_INTERVAL_SECONDS = int(os.getenv("SESSION_SWEEP_INTERVAL_SECONDS", "3600"))
SESSION_SWEEP_ENABLED = _env_bool("SESSION_SWEEP_ENABLED", "true")

# Durée de vie du cookie de session locale; l'expiration à minuit est gérée par l'application
SESSION_COOKIE_MAX_AGE_SECONDS = int(os.getenv("SESSION_COOKIE_MAX_AGE_SECONDS", str(400 * 24 * 3600)))

LOG_LEVEL =os.getenv("LOG_LEVEL", "INFO").upper()

# Liste JSON optionnelle: [{"username": ..., "password": ..., "is_admin": ...}, ...]
APP_USERS = os.getenv("APP_USERS")
