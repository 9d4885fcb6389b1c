# tests/test_migrations.py
from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.autogenerate import compare_metadata
from alembic.config import Config
from alembic.migration import MigrationContext
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.db.base import Base

BACKEND_DIR = Path(__file__).resolve().parents[1]

STRUCTURAL = {"add_table", "remove_table", "add_column", "remove_column"}


def alembic_config(url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


@pytest.fixture()
def migrated(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrations.db'}"
    cfg = alembic_config(url)
    command.upgrade(cfg, "head")
    engine = create_engine(url, poolclass=NullPool)
    try:
        yield cfg, engine
    finally:
        engine.dispose()


def test_upgrade_matches_models(migrated):
    _, engine = migrated
    with engine.connect() as conn:
        ctx = MigrationContext.configure(conn, opts={"compare_type": False})
        diffs = compare_metadata(ctx, Base.metadata)

    structural = [d for d in diffs if isinstance(d, tuple) and d[0] in STRUCTURAL]
    assert structural == []

    insp = inspect(engine)
    assert set(insp.get_table_names()) - {"alembic_version"} == set(Base.metadata.tables)
    for name, table in Base.metadata.tables.items():
        assert {i["name"] for i in insp.get_indexes(name)} == {i.name for i in table.indexes}, name


@pytest.mark.parametrize(
    "index_name,predicate",
    [
        ("uq_school_years_tenant_default", "is_default AND deleted_at IS NULL"),
        ("uq_tenant_access_requests_pending_user_tenant", "status = 'pending'"),
    ],
)
def test_partial_unique_indexes_are_created(migrated, index_name, predicate):
    _, engine = migrated
    with engine.connect() as conn:
        sql = conn.exec_driver_sql(
            "SELECT sql FROM sqlite_master WHERE type = 'index' AND name = ?", (index_name,)
        ).scalar()

    assert sql is not None
    assert sql.upper().startswith("CREATE UNIQUE INDEX")
    assert f"WHERE {predicate}" in sql


def test_downgrade_drops_everything(migrated):
    cfg, engine = migrated
    command.downgrade(cfg, "base")

    assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
