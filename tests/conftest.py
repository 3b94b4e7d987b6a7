"""Shared fixtures: a fresh file-backed SQLite database per test."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test-governance.db")

import pytest

import app.models  # noqa: F401  registers every table on Base.metadata
from app.db import Base, create_db_engine, make_session_factory
from oversight.audit import set_audit_logger


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'governance.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def fresh_audit_logger():
    """Every test gets its own global audit logger."""
    set_audit_logger(None)
    yield
    set_audit_logger(None)
