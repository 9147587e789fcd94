"""Pytest fixtures for testing"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from peer_ledger.api.main import create_app
from peer_ledger.domain.commands import DecideLoan, DepositCapital, RegisterUser, RequestLoan
from peer_ledger.domain.engine import LedgerEngine
from peer_ledger.domain.models import PaymentSchedule, Role
from peer_ledger.domain.money import Money
from peer_ledger.infrastructure.database.models import Base
from peer_ledger.infrastructure.database.session import get_db


# Test database: one shared in-memory connection so every session sees the same tables
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

START = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Deterministic clock that only moves when told to"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def sequential_ids():
    counter = itertools.count(1)
    return lambda kind: f"{kind}-{next(counter)}"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ledger(clock: FixedClock) -> LedgerEngine:
    """Empty ledger with a fixed clock and predictable ids"""
    return LedgerEngine(clock=clock, id_factory=sequential_ids())


@pytest.fixture
def funded_ledger(ledger: LedgerEngine):
    """
    Alice lends, Bob borrows $300 monthly (approved).

    Returns (engine, ids) where ids maps alice/bob/loan to entity ids.
    """
    alice = ledger.execute(RegisterUser(username="Alice", role=Role.LENDER)).changes.users.inserted[0]
    ledger.execute(DepositCapital(actor_id=alice.id, amount=Money(50_000)))
    bob = ledger.execute(RegisterUser(username="Bob", role=Role.BORROWER)).changes.users.inserted[0]
    loan = ledger.execute(
        RequestLoan(actor_id=bob.id, principal=Money(30_000), schedule=PaymentSchedule.MONTHLY)
    ).changes.loans.inserted[0]
    ledger.execute(DecideLoan(actor_id=alice.id, loan_id=loan.id, approve=True))
    return ledger, {"alice": alice.id, "bob": bob.id, "loan": loan.id}


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session, ledger: LedgerEngine) -> TestClient:
    """Create FastAPI test client with test database and a deterministic engine"""
    app = create_app(engine=ledger, session_factory=TestingSessionLocal)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def session_factory(db: Session):
    """Session factory bound to the test database, for persisters that open their own sessions"""
    return TestingSessionLocal
