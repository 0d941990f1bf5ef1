"""Process and job identity resolution."""

from typing import Dict, Tuple, TYPE_CHECKING

from core.exceptions import IdentityResolutionError, StoreError
from core.logging import get_logger
from models.process import Process, ProcessJob

if TYPE_CHECKING:
    from core.database import Database

logger = get_logger(__name__)


class ProcessManager:
    """Create-or-fetch resolver for processes and their jobs.

    Resolution is idempotent: the first call for a name inserts the record,
    later calls return the same identity. Resolved identities are memoized so
    repeated lookups within one manager do not hit storage.
    """

    def __init__(self, database: "Database"):
        self.database = database
        self._processes: Dict[str, Process] = {}
        self._jobs: Dict[Tuple[int, str], ProcessJob] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    async def load(self) -> None:
        """Prefetch known processes so resolution can skip storage."""
        if self._loaded:
            return

        try:
            processes = await self.database.get_all_processes()
        except StoreError as e:
            raise IdentityResolutionError("processes", str(e)) from e

        self._processes = {p.name: p for p in processes}
        self._loaded = True
        logger.debug("Process manager loaded", processes=len(self._processes))

    async def create_process(self, name: str) -> Process:
        """Resolve a process by name, inserting it on first use."""
        if not name:
            raise IdentityResolutionError(name, "process name must not be empty")

        process = self._processes.get(name)
        if process is not None:
            return process

        try:
            process = await self.database.create_process(name)
        except StoreError as e:
            raise IdentityResolutionError(name, str(e)) from e

        self._processes[name] = process
        return process

    async def create_job(self, process: Process, name: str) -> ProcessJob:
        """Resolve a job by name within process, inserting it on first use."""
        if not name:
            raise IdentityResolutionError(name, "job name must not be empty")
        if not process.id:
            raise IdentityResolutionError(name, "process has no identity")

        job = self._jobs.get((process.id, name))
        if job is not None:
            return job

        try:
            job = await self.database.create_job(process.id, name)
        except StoreError as e:
            raise IdentityResolutionError(f"{process.name}/{name}", str(e)) from e

        self._jobs[(process.id, name)] = job
        return job
