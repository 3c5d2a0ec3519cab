"""Shared fixtures: in-memory SQLite ledger, sessions, FastAPI test client."""
import os

# Must be set before transitledger.core.config is first imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from transitledger.core.db import Base, init_db, use_immediate_transactions
from transitledger.core.deps import get_db
from transitledger.main import create_app

HASH_A = bytes(range(32))
HASH_B = bytes(reversed(range(32)))
SIG = bytes([7]) * 65

ADMIN = "admin@agency"
PUBLISHER = "publisher@agency"
OPERATOR = "avl-feed@agency"
STRANGER = "someone@else"


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    use_immediate_transactions(engine)
    init_db(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def snapshot(db) -> dict:
    """Every row of every ledger table, for before/after comparisons."""
    db.expire_all()
    out = {}
    for table in Base.metadata.sorted_tables:
        rows = db.execute(select(table)).all()
        out[table.name] = sorted((tuple(r) for r in rows), key=repr)
    return out


@pytest.fixture
def session_factory():
    return make_session_factory()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(session_factory):
    application = create_app(create_tables=False)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = _get_db
    return application


@pytest.fixture
def http(app):
    with TestClient(app) as c:
        yield c
