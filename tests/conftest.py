# tests/conftest.py
from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from pipeline_registry.api.v1.endpoints import pipelines as pipelines_endpoints
from pipeline_registry.db.session import Base
from pipeline_registry.db.session import get_db as app_get_session
from pipeline_registry.main import app as fastapi_app
from pipeline_registry.models import Pipeline
from pipeline_registry.repositories.pipeline_repo import PipelineRepository
from pipeline_registry.services.template_fetcher import FetcherConfig, TemplateFetcher

TEST_DB_URL = "sqlite://"

SEQUENTIAL_URL = "https://storage.example.com/pipeline-dataset/sequential.yaml"
ARGUMENTS_TARBALL_URL = "https://storage.example.com/pipeline-dataset/arguments.tar.gz"

ARGUMENTS_YAML = b"""\
name: arguments-parameters
inputs:
- {name: param1, default: hello}
- {name: param2}
steps:
- name: echo
  command: [echo, '{{inputs.param1}}', '{{inputs.param2}}']
"""
SEQUENTIAL_YAML = b"""\
name: sequential
steps:
- {name: download, command: [gsutil, cat, 'gs://bucket/file']}
- {name: echo, command: [echo, done]}
"""
# Bytes are stored verbatim; a tarball is just an opaque payload here.
ARGUMENTS_TARBALL = b"\x1f\x8b\x08\x00fake-gzip-payload\x00\x00"

REMOTE_TEMPLATES: dict[str, bytes] = {
    SEQUENTIAL_URL: SEQUENTIAL_YAML,
    ARGUMENTS_TARBALL_URL: ARGUMENTS_TARBALL,
}


def serve_templates(request: httpx.Request) -> httpx.Response:
    """Mock transport handler serving ``REMOTE_TEMPLATES``."""
    body = REMOTE_TEMPLATES.get(str(request.url))
    if body is None:
        return httpx.Response(404, text="not found")
    return httpx.Response(200, content=body, headers={"content-type": "application/octet-stream"})


def build_fetcher(
    handler: Callable[[httpx.Request], httpx.Response] = serve_templates,
    *,
    max_bytes: int = 1024 * 1024,
) -> TemplateFetcher:
    """Return a fetcher whose HTTP traffic is answered by ``handler``."""
    return TemplateFetcher(
        FetcherConfig(timeout_seconds=5.0, max_bytes=max_bytes),
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def repo(db_session: Session) -> PipelineRepository:
    return PipelineRepository(db_session)


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def template_fetcher() -> Iterator[TemplateFetcher]:
    """One mock-backed fetcher per test, closed at teardown."""
    fetcher = build_fetcher()
    try:
        yield fetcher
    finally:
        asyncio.run(fetcher.close())


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, template_fetcher: TemplateFetcher
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    def _get_fetcher_override() -> TemplateFetcher:
        return template_fetcher

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[pipelines_endpoints.get_template_fetcher_dep] = _get_fetcher_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(pipelines_endpoints.get_template_fetcher_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_pipeline(db_session: Session) -> Callable[..., Pipeline]:
    """Insert a pipeline directly, optionally pinning its creation time."""

    def _make(name: str, *, created_at: datetime | None = None, template: bytes = b"steps: []\n") -> Pipeline:
        pipeline = Pipeline(name=name, template=template)
        if created_at is not None:
            pipeline.created_at = created_at
        db_session.add(pipeline)
        db_session.commit()
        return pipeline

    return _make


@pytest.fixture()
def base_time() -> datetime:
    return datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture()
def pin_created_at(db_session: Session) -> Callable[[list[str], datetime], None]:
    """Give pipelines strictly increasing creation times in the given order."""

    def _pin(pipeline_ids: list[str], start: datetime) -> None:
        for offset, pipeline_id in enumerate(pipeline_ids):
            pipeline = db_session.get(Pipeline, pipeline_id)
            assert pipeline is not None
            pipeline.created_at = start + timedelta(seconds=offset)
        db_session.commit()

    return _pin
