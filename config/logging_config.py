import logging
from typing import Optional

from config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure le logging de l'application une seule fois par processus
    (Streamlit ré-exécute les scripts à chaque interaction).
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(level=level or settings.LOG_LEVEL, format=LOG_FORMAT)
    # SQLAlchemy reste silencieux sauf en cas d'avertissement
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
