"""The snaps migration must build the same schema the ORM model declares."""

from __future__ import annotations

import importlib.util
from pathlib import Path

from alembic.autogenerate import compare_metadata
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from snapkeeper.db.base import Base
from snapkeeper.models.snap import Snap

MIGRATION = Path(__file__).resolve().parents[2] / "alembic" / "versions" / "20261017_000001_snaps.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("snaps_migration", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_migration_matches_model(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'migrated.db'}")
    migration = _load_migration()
    try:
        with engine.begin() as conn:
            context = MigrationContext.configure(conn, opts={"compare_type": False})
            with Operations.context(context):
                migration.upgrade()
            diffs = compare_metadata(context, Base.metadata)
            columns = {column["name"]: column for column in inspect(conn).get_columns("snaps")}
    finally:
        engine.dispose()

    assert diffs == []
    assert columns["created_at"]["nullable"] is False
    assert not Snap.__table__.c.created_at.nullable
    assert columns["viewed"]["default"] is not None
    assert Snap.__table__.c.viewed.server_default is not None
