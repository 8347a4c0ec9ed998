from __future__ import annotations

import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from db.session import Base

_MIGRATION = Path(__file__).resolve().parent.parent / "alembic" / "versions" / "001_initial.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("migration_001_initial", _MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_migration_matches_models():
    migration = _load_migration()
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            migration.upgrade()
        insp = inspect(conn)
        for name in ("threads", "thread_outputs"):
            migrated = {c["name"] for c in insp.get_columns(name)}
            assert migrated == set(Base.metadata.tables[name].columns.keys())
        indexes = {ix["name"] for ix in insp.get_indexes("thread_outputs")}
        assert {"ix_thread_outputs_thread_id", "ix_thread_outputs_expires_at"} <= indexes

        with Operations.context(MigrationContext.configure(conn)):
            migration.downgrade()
        assert inspect(conn).get_table_names() == []
