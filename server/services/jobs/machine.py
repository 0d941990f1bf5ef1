"""Machine context: cache and job log access scoped to one host."""

import time
from typing import List, TYPE_CHECKING

from core.logging import get_logger, log_cache_operation
from models.cache import ProcessCache
from models.process import Process, ProcessJob, ProcessJobLog, ProcessLogType

if TYPE_CHECKING:
    from core.database import Database

logger = get_logger(__name__)

_LOG_LEVELS = {
    ProcessLogType.GENERIC: "info",
    ProcessLogType.INFO: "info",
    ProcessLogType.WARNING: "warning",
    ProcessLogType.ERROR: "error",
    ProcessLogType.DEBUG: "debug",
}


class Machine:
    """Executing host identity.

    Every cache read and write goes through here so that it is partitioned by
    this machine's name; two machines never see each other's entries even for
    the same process and job.
    """

    def __init__(self, database: "Database", name: str):
        if not name:
            raise ValueError("Machine name must not be empty")
        self.database = database
        self.name = name
        self._loaded = False

    async def load(self) -> None:
        """Register this machine (idempotent)."""
        if self._loaded:
            return
        await self.database.register_machine(self.name)
        self._loaded = True
        logger.debug("Machine loaded", machine=self.name)

    async def create_log(self, process: Process, job: ProcessJob, message: str,
                         log_type: ProcessLogType = ProcessLogType.GENERIC) -> ProcessJobLog:
        """Persist a job log entry and mirror it to the structured log."""
        log_type = ProcessLogType(log_type)
        entry = await self.database.add_job_log(process.id, job.id, self.name, message, log_type)
        getattr(logger, _LOG_LEVELS[log_type])(
            message,
            process=process.name,
            job=job.name,
            machine=self.name,
            log_type=log_type.value
        )
        return entry

    async def create_cache(self, process: Process, job: ProcessJob, key: str, value: str) -> ProcessCache:
        now = int(time.time())
        record = await self.database.insert_cache(process.id, job.id, self.name, key, value, now)
        log_cache_operation(logger, "create", key=key, record_id=record.id, machine=self.name)
        return record

    async def get_cache(self, process: Process, job: ProcessJob, key: str) -> List[ProcessCache]:
        records = await self.database.query_cache(process.id, job.id, self.name, key)
        log_cache_operation(logger, "get", key=key, hit=bool(records), machine=self.name)
        return records

    async def has_cache_key(self, process: Process, job: ProcessJob, key: str) -> bool:
        return await self.database.cache_key_exists(process.id, job.id, self.name, key)

    async def has_cache(self, process: Process, job: ProcessJob) -> bool:
        return await self.database.cache_exists(process.id, job.id, self.name)

    async def get_full_cache(self, process: Process, job: ProcessJob) -> List[ProcessCache]:
        records = await self.database.fetch_cache(process.id, job.id, self.name)
        log_cache_operation(logger, "get_full", count=len(records), machine=self.name)
        return records
