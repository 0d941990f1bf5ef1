"""Shared fixtures for job cache tests.

Every test gets its own file-backed SQLite database under tmp_path.
"""

from typing import List

import pytest
import pytest_asyncio

from core.config import Settings
from core.database import Database
from services.jobs import Job


class RecordingJob(Job):
    """Concrete job that records which hooks fired."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.hooks: List[str] = []
        self.runs = 0

    async def on_cache_exist(self) -> None:
        self.hooks.append("exist")

    async def on_cache_empty(self) -> None:
        self.hooks.append("empty")

    async def run(self) -> None:
        self.runs += 1


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/jobs.db",
        machine_name="test-host",
        log_format="console",
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings)
    await db.startup()
    yield db
    await db.shutdown()


@pytest.fixture
def make_job(database):
    """Build RecordingJobs against the test database."""

    def _make(process_name: str = "build", job_name: str = "compile",
              machine_name: str = "ci-1") -> RecordingJob:
        return RecordingJob(database, process_name, job_name, machine_name)

    return _make
