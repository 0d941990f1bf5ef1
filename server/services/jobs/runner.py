"""Job runner: loads a job, then runs it."""

import time
from typing import Iterable

from core.logging import get_logger, job_log_context, log_execution_time
from .job import Job

logger = get_logger(__name__)


class JobRunner:
    """Drives jobs through load() and run().

    A job that fails to load never reaches run(). Errors from either phase
    are logged and propagate unchanged; cache entries a failed run() already
    wrote stay in place.
    """

    async def execute(self, job: Job) -> None:
        """Load job, then run it."""
        with job_log_context(job.process_name, job.job_name, job.machine_name):
            start = time.time()
            try:
                await job.load()
            except Exception as e:
                logger.error("Job failed to load", error=str(e))
                raise
            log_execution_time(logger, "load", start, time.time())

            start = time.time()
            try:
                await job.run()
            except Exception as e:
                logger.error("Job run failed", error=str(e))
                raise
            log_execution_time(logger, "run", start, time.time())

    async def execute_all(self, jobs: Iterable[Job]) -> None:
        """Execute jobs one after another; the first failure stops the batch."""
        for job in jobs:
            await self.execute(job)
