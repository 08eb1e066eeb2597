from datetime import date, datetime
from decimal import Decimal


def format_currency(value: float | Decimal | None) -> str:
    """
    Formate un montant en dinars (3 décimales, espace pour les milliers).
    """
    amount = Decimal(str(value)) if value is not None else Decimal("0")
    return f"{amount:,.3f} DT".replace(",", " ")


def format_date(d: date | datetime | None) -> str:
    """
    Formate les dates au format français.
    """
    if d is None:
        return "-"
    if isinstance(d, datetime):
        return d.strftime("%d/%m/%Y %H:%M")
    return d.strftime("%d/%m/%Y")


def format_open_session(session) -> str:
    """Résumé d'une session de caisse ouverte (page d'accueil)."""
    return (
        f"Session du {format_date(session.date_session)} ouverte par {session.cree_par}, "
        f"total espèce enregistré: {format_currency(session.total_espece)}"
    )
