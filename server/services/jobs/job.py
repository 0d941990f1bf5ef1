"""Base class for resumable jobs backed by a per-machine process cache.

Lifecycle:
    UNLOADED -> LOADING -> LOADED

load() resolves the process and job identities, then branches on whether
this (process, job, machine) already has cached records:

    cache exists -> sync_cache() -> on_cache_exist()
    cache empty  -> on_cache_empty()

A failure anywhere in load() drops back to UNLOADED with no identity kept,
so load() can simply be called again. run() is never invoked here; the
caller decides whether to run once loading has finished.
"""

import contextvars
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, TYPE_CHECKING

from core.exceptions import InvalidStateError
from core.logging import get_logger
from models.cache import ProcessCache
from models.process import Process, ProcessJob, ProcessJobLog, ProcessLogType
from .index import CacheIndex
from .machine import Machine
from .manager import ProcessManager

if TYPE_CHECKING:
    from core.database import Database

logger = get_logger(__name__)

# ids of the jobs whose load() is running in the current async context
_loading_jobs: contextvars.ContextVar[FrozenSet[int]] = contextvars.ContextVar(
    "loading_jobs", default=frozenset()
)


class JobState(str, Enum):
    """Job controller lifecycle states."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class LoadedContext:
    """Identities and index a job holds once resolution has succeeded."""
    process: Process
    job: ProcessJob
    index: CacheIndex = field(default_factory=CacheIndex)


class Job(ABC):
    """Abstract job with a durable, append-only key-value cache.

    Subclasses implement on_cache_exist(), on_cache_empty() and run().
    Keys are not unique: values that share a relationship should share a key.
    """

    def __init__(self, database: "Database", process_name: str, job_name: str,
                 machine_name: Optional[str] = None):
        """Construct an unloaded job. Call load() before anything else.

        Args:
            database: Database service the caches and identities live in
            process_name: Name of the process the job belongs to
            job_name: Name of the job within the process
            machine_name: Host identity the cache is partitioned by.
                Defaults to the machine_name setting.
        """
        self.machine = Machine(database, machine_name or database.settings.machine_name)
        self.process_manager = ProcessManager(database)
        self.process_name = process_name
        self.job_name = job_name
        self._state = JobState.UNLOADED
        self._context: Optional[LoadedContext] = None

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def loaded(self) -> bool:
        return self._state == JobState.LOADED

    @property
    def machine_name(self) -> str:
        return self.machine.name

    @property
    def process(self) -> Process:
        return self._require_context("access process").process

    @property
    def process_job(self) -> ProcessJob:
        return self._require_context("access job").job

    @property
    def index(self) -> CacheIndex:
        return self._require_context("access cache index").index

    def _require_context(self, operation: str) -> LoadedContext:
        """Return the loaded context, or fail unless load() has finished.

        While LOADING only the load path itself (hooks included) is let
        through; other coroutines see InvalidStateError.
        """
        if self._state == JobState.LOADED:
            return self._context
        if self._context is None or id(self) not in _loading_jobs.get():
            raise InvalidStateError(operation, self._state.value)
        return self._context

    async def load(self) -> None:
        """Resolve identities and dispatch to the cache hooks, once."""
        if self._state == JobState.LOADED:
            return
        if self._state == JobState.LOADING:
            raise InvalidStateError("load", self._state.value)

        self._state = JobState.LOADING
        token = _loading_jobs.set(_loading_jobs.get() | {id(self)})
        try:
            await self.process_manager.load()
            await self.machine.load()

            # create-or-fetch: an existing process or job is returned, never duplicated
            process = await self.process_manager.create_process(self.process_name)
            process_job = await self.process_manager.create_job(process, self.job_name)
            self._context = LoadedContext(process=process, job=process_job)

            if await self.has_cache():
                await self.sync_cache()
                logger.info("Job cache found", process=self.process_name, job=self.job_name,
                            machine=self.machine_name, records=len(self._context.index))
                await self.on_cache_exist()
            else:
                logger.info("Job cache empty", process=self.process_name, job=self.job_name,
                            machine=self.machine_name)
                await self.on_cache_empty()

        except BaseException:
            self._context = None
            self._state = JobState.UNLOADED
            raise
        finally:
            _loading_jobs.reset(token)

        self._state = JobState.LOADED
        logger.debug("Job loaded", process=self.process_name, job=self.job_name)

    @abstractmethod
    async def on_cache_exist(self) -> None:
        """Called during load() after the index is synced from a prior run."""

    @abstractmethod
    async def on_cache_empty(self) -> None:
        """Called during load() when this job has no cache on this machine."""

    @abstractmethod
    async def run(self) -> None:
        """Do the job's work. Called by the owner after load()."""

    async def sync_cache(self) -> None:
        """Rebuild the local index from the full stored cache."""
        context = self._require_context("sync cache")
        records = await self.get_full_cache()
        context.index.rebuild(records)

    async def create_log(self, message: str,
                         log_type: ProcessLogType = ProcessLogType.GENERIC) -> ProcessJobLog:
        """Write a durable log entry for this job on this machine."""
        context = self._require_context("create log")
        return await self.machine.create_log(context.process, context.job, message, log_type)

    async def create_cache(self, key: str, value: str) -> ProcessCache:
        """Append a cache value and extend the local index with it.

        Args:
            key: Key to store under. Not unique; related values share a key.
            value: Opaque text payload
        """
        context = self._require_context("create cache")
        record = await self.machine.create_cache(context.process, context.job, key, value)
        context.index.add(record)
        return record

    async def get_cache(self, key: str) -> List[ProcessCache]:
        """Get every stored record for key, read through to storage."""
        context = self._require_context("get cache")
        return await self.machine.get_cache(context.process, context.job, key)

    async def has_cache_key(self, key: str) -> bool:
        context = self._require_context("check cache key")
        return await self.machine.has_cache_key(context.process, context.job, key)

    async def has_cache(self) -> bool:
        """Whether this job has any cache on this machine."""
        context = self._require_context("check cache")
        return await self.machine.has_cache(context.process, context.job)

    async def get_full_cache(self) -> List[ProcessCache]:
        context = self._require_context("get full cache")
        return await self.machine.get_full_cache(context.process, context.job)

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(process={self.process_name!r}, job={self.job_name!r}, "
                f"machine={self.machine_name!r}, state={self._state.value})")
