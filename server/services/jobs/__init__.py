"""Resumable jobs with a per-machine process cache.

Usage:
    from services.jobs import Job, JobRunner

    class CompileJob(Job):
        async def on_cache_exist(self):
            self.artifact = self.index.first("artifact-hash")

        async def on_cache_empty(self):
            self.artifact = None

        async def run(self):
            if self.artifact is None:
                await self.create_cache("artifact-hash", compute_hash())

    await JobRunner().execute(CompileJob(database, "build", "compile", "ci-1"))
"""

from .index import CacheIndex
from .manager import ProcessManager
from .machine import Machine
from .job import Job, JobState, LoadedContext
from .runner import JobRunner

__all__ = [
    # Index
    "CacheIndex",
    # Collaborators
    "ProcessManager",
    "Machine",
    # Job
    "Job",
    "JobState",
    "LoadedContext",
    # Runner
    "JobRunner",
]
