"""Tests for settings, logging setup and the DI container."""

import pytest
import structlog
from dependency_injector import providers

from core.config import Settings
from core.container import Container
from core.database import Database
from core.logging import (
    configure_logging,
    get_logger,
    job_log_context,
    log_cache_operation,
    log_execution_time,
)
from services.jobs import JobRunner


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("MACHINE_NAME", raising=False)
        settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
        assert settings.machine_name
        assert settings.log_format == "json"
        assert settings.is_memory_database

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MACHINE_NAME", "ci-7")
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/nested/jobs.db")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.machine_name == "ci-7"
        assert settings.log_level == "DEBUG"
        assert (tmp_path / "nested").is_dir()
        assert not settings.is_memory_database

    @pytest.mark.parametrize("url", [
        "sqlite+aiosqlite://",
        "sqlite+aiosqlite:///:memory:",
        "sqlite+aiosqlite:///file:jobs?mode=memory&uri=true",
    ])
    def test_memory_urls_detected(self, url):
        assert Settings(database_url=url).is_memory_database

    def test_file_url_not_memory(self, tmp_path):
        settings = Settings(database_url=f"sqlite+aiosqlite:///{tmp_path}/jobs.db")
        assert settings.is_sqlite
        assert not settings.is_memory_database

    def test_rejects_small_pool(self):
        with pytest.raises(ValueError):
            Settings(database_url="sqlite+aiosqlite:///:memory:", database_pool_size=1)


class TestLogging:
    def test_configure_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "jobs.log"
        settings = Settings(
            database_url="sqlite+aiosqlite:///:memory:",
            log_format="console",
            log_file=str(log_file),
        )
        configure_logging(settings)

        logger = get_logger("test")
        log_execution_time(logger, "load", 1.0, 1.5, job="compile")
        log_cache_operation(logger, "get", key="k", hit=True)

        assert log_file.exists()

    def test_job_log_context_binds_identity(self):
        with job_log_context("build", "compile", "ci-1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"process": "build", "job": "compile", "machine": "ci-1"}
        assert "job" not in structlog.contextvars.get_contextvars()


class TestContainer:
    def test_wires_singletons(self, settings):
        container = Container()
        container.settings.override(providers.Object(settings))

        database = container.database()

        assert isinstance(database, Database)
        assert database.settings is settings
        assert container.database() is database
        assert isinstance(container.job_runner(), JobRunner)
        assert container.job_runner() is container.job_runner()
