"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, timezone
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from ach_engine.api.main import create_app
from ach_engine.api.dependencies import get_transmitter
from ach_engine.config import OriginatorConfig
from ach_engine.domain.models import Entry, TransactionType
from ach_engine.infrastructure.database.models import Base
from ach_engine.infrastructure.database.session import get_db
from ach_engine.services.batch_orchestrator import BatchOrchestrator


# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FIXED_NOW = datetime(2026, 3, 2, 14, 5, tzinfo=timezone.utc)


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
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database and no transmission"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transmitter] = lambda: None
    return TestClient(app)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def originator() -> OriginatorConfig:
    return OriginatorConfig(
        immediate_destination="091000019",
        immediate_destination_name="Federal Reserve Bank",
        immediate_origin="1234567890",
        company_name="Acme Corporation",
        company_id="1234567890",
        originating_dfi="09100001",
    )


@pytest.fixture
def orchestrator(db: Session, originator: OriginatorConfig) -> BatchOrchestrator:
    """Orchestrator with a frozen clock and no transmitter"""
    return BatchOrchestrator(db, originator=originator, clock=lambda: FIXED_NOW)


@pytest.fixture
def make_entry() -> Callable[..., Entry]:
    """Factory for valid entries; override any field by keyword"""

    def _make(**overrides) -> Entry:
        fields = dict(
            amount_cents=250000,  # $2,500.00
            routing_number="021000021",
            account_number="1234567",
            transaction_type=TransactionType.CREDIT,
            reference_code="E1001",
            recipient_id="emp-1",
            recipient_name="Jane Doe",
        )
        fields.update(overrides)
        return Entry(**fields)

    return _make
