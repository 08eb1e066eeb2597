"""
Fixtures communes: base SQLite en mémoire, horloge fixe, annuaire par défaut.
"""
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base
from config.users import DEFAULT_USERS, UserDirectory
from models.daily_session import DailySession
from models.rapport import MODE_ESPECE, Rapport
from services.auth_service import AuthService
from services.local_session import LocalSessionCache, MemoryStorage


class FixedClock:
    """Horloge réglable à la main."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FailingSession:
    """Session dont toute requête échoue (base injoignable)."""

    def __init__(self):
        self.rollbacks = 0

    def query(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connexion perdue"))

    def add(self, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("connexion perdue"))

    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("connexion perdue"))

    def rollback(self):
        self.rollbacks += 1


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def failing_db():
    return FailingSession()


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 10, 9, 0))


@pytest.fixture
def users():
    return UserDirectory(DEFAULT_USERS)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cache(storage, users, clock):
    return LocalSessionCache(storage, users, clock=clock)


@pytest.fixture
def auth(users, cache, clock):
    return AuthService(users=users, cache=cache, clock=clock)


@pytest.fixture
def add_rapport(db):
    def _add(montant, created_at, mode_paiement=MODE_ESPECE, **kwargs):
        row = Rapport(
            montant=Decimal(str(montant)),
            mode_paiement=mode_paiement,
            created_at=created_at,
            date_operation=created_at.date(),
            **kwargs,
        )
        db.add(row)
        db.commit()
        return row

    return _add


@pytest.fixture
def add_session(db):
    def _add(day: date, cree_par="Ahlem", session_fermee=False, total_espece="0", **kwargs):
        row = DailySession(
            date_session=day,
            cree_par=cree_par,
            session_fermee=session_fermee,
            total_espece=Decimal(total_espece),
            **kwargs,
        )
        db.add(row)
        db.commit()
        return row

    return _add
