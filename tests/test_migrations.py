# tests/test_migrations.py
"""The Alembic revision owns the schema; it must agree with the ORM models."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from pipeline_registry.db.session import Base

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _alembic_config() -> Config:
    config = Config()
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    return config


def test_upgrade_builds_model_schema(tmp_path, monkeypatch) -> None:
    url = f"sqlite:///{tmp_path / 'registry.db'}"
    monkeypatch.setenv("ALEMBIC_URL", url)
    config = _alembic_config()

    command.upgrade(config, "head")
    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        table = Base.metadata.tables["pipeline"]
        assert "pipeline" in inspector.get_table_names()
        assert {c["name"] for c in inspector.get_columns("pipeline")} == set(table.columns.keys())
        assert {i["name"] for i in inspector.get_indexes("pipeline")} >= {
            index.name for index in table.indexes
        }
        assert [u["column_names"] for u in inspector.get_unique_constraints("pipeline")] == [["name"]]
    finally:
        engine.dispose()

    command.downgrade(config, "base")
    engine = create_engine(url)
    try:
        assert "pipeline" not in inspect(engine).get_table_names()
    finally:
        engine.dispose()
