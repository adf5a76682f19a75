# tests/test_packaging.py
"""Sanity checks on the project metadata that ``pip install`` reads."""

import tomllib
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _project() -> dict:
    with (PROJECT_ROOT / "pyproject.toml").open("rb") as handle:
        return tomllib.load(handle)["project"]


def test_readme_points_at_an_existing_file() -> None:
    readme = _project().get("readme")
    if readme is not None:
        path = readme if isinstance(readme, str) else readme["file"]
        assert (PROJECT_ROOT / path).is_file()
        assert path != "SPEC_FULL.md"


def test_declares_runtime_stack() -> None:
    names = {dep.split(">")[0].split("=")[0].strip() for dep in _project()["dependencies"]}
    assert {"fastapi", "sqlalchemy", "alembic", "pydantic-settings", "httpx"} <= names
