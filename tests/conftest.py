"""
Pytest configuration and fixtures

Each test gets its own SQLite file database. Connections open their
transactions with BEGIN IMMEDIATE so that concurrent sessions serialize on
the database write lock the way PostgreSQL row locks serialize them.
"""

import os

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///./shopvest_test.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"
os.environ["JWT_SECRET"] = "test-secret-key-min-32-chars-for-testing-only"
os.environ["WEBHOOK_SECRET"] = ""
os.environ["METRICS_PUBLIC"] = "false"
os.environ["METRICS_TOKEN"] = "test-metrics-token"
os.environ["LOCK_TIMEOUT_SECONDS"] = "10"
os.environ["LOG_LEVEL"] = "WARNING"

from uuid import UUID, uuid4
from decimal import Decimal
from typing import Optional

from shopvest.infrastructure.database import Base, get_db
from shopvest.main import app
import shopvest.models  # noqa: F401
from shopvest.core.ledger.models import LedgerCategory, WalletKind
from shopvest.core.users.models import User, UserStatus, KYCStatus
from shopvest.services import shops, wallets
from shopvest.services.payouts import LoggingPayoutGateway, set_payout_gateway
from shopvest.utils.resource_locks import unit_of_work, wallet_key


def _sqlite_engine(path):
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


@pytest.fixture(scope="function")
def engine(tmp_path):
    test_engine = _sqlite_engine(tmp_path / "shopvest_test.db")
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        test_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    """
    Fresh database session for each test.

    Tests that run work in other sessions (threads, API requests) must end
    this session's transaction first; an open transaction holds the write lock.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def reset_payout_gateway():
    yield
    set_payout_gateway(LoggingPayoutGateway())


@pytest.fixture(scope="function")
def client(session_factory):
    """
    FastAPI test client; every request gets its own session.
    """
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    """
    Factory: create a committed user, optionally funded. Returns the user id.
    """
    def _make(
        kyc_status: KYCStatus = KYCStatus.APPROVED,
        main: int = 0,
        profit: int = 0,
        email: Optional[str] = None,
    ) -> UUID:
        user_id = uuid4()
        db = session_factory()
        try:
            db.add(User(
                id=user_id,
                email=email or f"user-{user_id.hex[:8]}@example.com",
                full_name="Test User",
                status=UserStatus.ACTIVE.value,
                kyc_status=kyc_status.value,
            ))
            db.commit()
            if main:
                with unit_of_work(db, wallet_key(user_id, WalletKind.MAIN)):
                    wallets.credit(db, user_id, WalletKind.MAIN, main, LedgerCategory.DEPOSIT, description="Test deposit")
            if profit:
                with unit_of_work(db, wallet_key(user_id, WalletKind.PROFIT)):
                    wallets.credit(db, user_id, WalletKind.PROFIT, profit, LedgerCategory.INCOME, description="Test profit")
        finally:
            db.close()
        return user_id

    return _make


@pytest.fixture
def make_shop(session_factory):
    """
    Factory: create an ACTIVE shop. Returns the shop id.
    """
    def _make(
        name: str = "Corner Bakery",
        daily_percent: Optional[Decimal] = Decimal("1.50"),
        duration_days: int = 30,
        min_amount: int = 1000,
        max_amount: int = 100000,
        total_slots: int = 10,
    ) -> UUID:
        db = session_factory()
        try:
            shop = shops.create_shop(
                db,
                name=name,
                daily_percent=daily_percent,
                duration_days=duration_days,
                min_amount=min_amount,
                max_amount=max_amount,
                total_slots=total_slots,
            )
            return shop.id
        finally:
            db.close()

    return _make


@pytest.fixture
def funded_user(make_user) -> UUID:
    """KYC-approved user with 50000 on MAIN and 20000 on PROFIT"""
    return make_user(main=50000, profit=20000)
