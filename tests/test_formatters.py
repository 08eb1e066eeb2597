from datetime import date, datetime
from decimal import Decimal

from models.daily_session import DailySession
from utils.formatters import format_currency, format_date, format_open_session


def test_format_currency_uses_millimes_and_spaces():
    assert format_currency(Decimal("1234.5")) == "1 234.500 DT"
    assert format_currency(23.4) == "23.400 DT"
    assert format_currency(None) == "0.000 DT"


def test_format_date():
    assert format_date(date(2024, 3, 10)) == "10/03/2024"
    assert format_date(datetime(2024, 3, 10, 16, 5)) == "10/03/2024 16:05"
    assert format_date(None) == "-"


def test_format_open_session():
    session = DailySession(
        date_session=date(2024, 3, 10), cree_par="Ahlem", total_espece=Decimal("450.5")
    )

    assert format_open_session(session) == (
        "Session du 10/03/2024 ouverte par Ahlem, total espèce enregistré: 450.500 DT"
    )
