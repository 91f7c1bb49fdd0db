"""
Shared test fixtures for OrderDesk tests

Provides the audit database, an in-memory order store, the workflow built
on it, and a TestClient wired to both.
"""
import os

# Keep the app's own engine off disk; must run before app imports
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.v1.deps import get_workflow
from app.core.config import settings
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.services.workflow import build_workflow
from tests.factories import FakeOrderStore, create_wire_order, reset_sequences


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    from app.models import OrderStatusEvent  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def store():
    """
    Backing store seeded with one order per interesting state:

    o1 pending/card, o2 shipped/cod/unpaid, o3 delivered/card/paid,
    o4 processing/cod/unpaid (legacy `status` field), o5 cancelled,
    o6 unrecognized status
    """
    reset_sequences()
    return FakeOrderStore([
        create_wire_order("o1", status="pending", payment_method="card"),
        create_wire_order("o2", status="shipped", payment_method="cod", payment_status="unpaid"),
        create_wire_order("o3", status="delivered", payment_method="card", payment_status="paid"),
        create_wire_order(
            "o4", status="processing", payment_method="cod", payment_status="unpaid",
            legacy_fields=True,
        ),
        create_wire_order("o5", status="cancelled"),
        create_wire_order("o6", status="on_hold"),
    ])


@pytest.fixture
def workflow(store):
    """Workflow over the fake store, with default settings."""
    return build_workflow(settings, store=store)


@pytest.fixture
def client(db_session, workflow):
    """Create a test client with database and workflow overrides"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_workflow] = lambda: workflow
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
