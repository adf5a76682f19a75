# tests/test_settings.py
"""Settings resolution from the environment."""

from pipeline_registry.core.settings import Settings


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.list_default_page_size == 20
    assert settings.list_max_page_size == 200
    assert settings.effective_database_url == "sqlite:///./pipelines.db"


def test_environment_aliases(monkeypatch) -> None:
    monkeypatch.setenv("LIST_DEFAULT_PAGE_SIZE", "5")
    monkeypatch.setenv("TEMPLATE_FETCH_TIMEOUT_SECONDS", "2.5")
    settings = Settings(_env_file=None)
    assert settings.list_default_page_size == 5
    assert settings.template_fetch_timeout_seconds == 2.5


def test_testing_database_override(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db/prod")
    monkeypatch.setenv("TEST_DATABASE_URL", "sqlite://")
    monkeypatch.setenv("USE_TEST_DATABASE", "true")
    settings = Settings(_env_file=None)
    assert settings.effective_database_url == "sqlite://"

    monkeypatch.setenv("USE_TEST_DATABASE", "false")
    settings = Settings(_env_file=None)
    assert settings.effective_database_url == "postgresql+asyncpg://db/prod"
    assert settings.database_url_sync == "postgresql+psycopg://db/prod"
