"""Add backend to path so tests can use direct imports (models, docgen, db) when run from project root."""
import os
import sys

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storage
from cache import disk_cache
from db.models import Thread
from db.session import Base


@pytest.fixture(autouse=True)
def _isolated_dirs(tmp_path, monkeypatch):
    """Generated files and the logo cache go to a per-test temp dir."""
    monkeypatch.setattr(storage, "OUTPUT_DIR", tmp_path / "outputs")
    monkeypatch.setattr(disk_cache, "LOGO_CACHE_DIR", tmp_path / "logos")
    return tmp_path


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def thread(db):
    row = Thread(id="thread-1234567890", title="Policy questions")
    db.add(row)
    db.commit()
    return row
