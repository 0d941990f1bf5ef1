"""Async database service with SQLModel and SQLAlchemy 2.0."""

import time
from typing import List, Optional
from sqlmodel import SQLModel, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from contextlib import asynccontextmanager

from core.config import Settings
from core.exceptions import StoreError
from core.logging import get_logger
from models.process import Process, ProcessJob, ProcessMachine, ProcessJobLog, ProcessLogType
from models.cache import ProcessCache

logger = get_logger(__name__)


def _now() -> int:
    return int(time.time())


class Database:
    """Async database service with SQLModel.

    Storage failures are logged and re-raised as StoreError; nothing is
    swallowed and nothing is retried here.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine = None
        self.async_session = None

    async def startup(self):
        """Initialize database connection and create tables."""
        if self.engine is not None:
            return

        engine_kwargs = {
            "echo": self.settings.database_echo,
            "future": True,
        }
        # In-memory SQLite runs on a static pool which takes no sizing
        if not self.settings.is_memory_database:
            engine_kwargs["pool_size"] = self.settings.database_pool_size
            engine_kwargs["max_overflow"] = self.settings.database_max_overflow

        try:
            self.engine = create_async_engine(self.settings.database_url, **engine_kwargs)

            self.async_session = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

            logger.info("Database initialized successfully", url=self.settings.database_url)

        except Exception as e:
            logger.error("Database startup failed", error=str(e))
            self.engine = None
            self.async_session = None
            raise

    async def shutdown(self):
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            logger.info("Database connections closed")

    @asynccontextmanager
    async def get_session(self):
        """Get async database session."""
        if not self.async_session:
            raise StoreError("session", "Database not initialized")

        async with self.async_session() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    # ============================================================================
    # Processes
    # ============================================================================

    async def get_process_by_name(self, name: str) -> Optional[Process]:
        """Get process by its unique name."""
        try:
            async with self.get_session() as session:
                stmt = select(Process).where(Process.name == name)
                result = await session.execute(stmt)
                return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error("Failed to get process", name=name, error=str(e))
            raise StoreError("get_process", str(e)) from e

    async def get_all_processes(self) -> List[Process]:
        """Get all known processes."""
        try:
            async with self.get_session() as session:
                stmt = select(Process).order_by(Process.id)
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error("Failed to get all processes", error=str(e))
            raise StoreError("get_all_processes", str(e)) from e

    async def create_process(self, name: str) -> Process:
        """Insert a process, or return the existing one with that name."""
        existing = await self.get_process_by_name(name)
        if existing:
            return existing

        try:
            async with self.get_session() as session:
                now = _now()
                process = Process(name=name, created_at=now, updated_at=now)
                session.add(process)
                await session.commit()
                await session.refresh(process)
                logger.info("Process created", process_id=process.id, name=name)
                return process

        except IntegrityError:
            # Another writer inserted the same name first
            existing = await self.get_process_by_name(name)
            if existing:
                return existing
            raise StoreError("create_process", f"process '{name}' vanished after conflict")

        except SQLAlchemyError as e:
            logger.error("Failed to create process", name=name, error=str(e))
            raise StoreError("create_process", str(e)) from e

    # ============================================================================
    # Jobs
    # ============================================================================

    async def get_job(self, process_id: int, name: str) -> Optional[ProcessJob]:
        """Get a job by name within a process."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessJob).where(
                    ProcessJob.process == process_id,
                    ProcessJob.name == name
                )
                result = await session.execute(stmt)
                return result.scalar_one_or_none()

        except SQLAlchemyError as e:
            logger.error("Failed to get job", process_id=process_id, name=name, error=str(e))
            raise StoreError("get_job", str(e)) from e

    async def get_jobs_for_process(self, process_id: int) -> List[ProcessJob]:
        """Get all jobs registered under a process."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessJob).where(ProcessJob.process == process_id).order_by(ProcessJob.id)
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error("Failed to get jobs", process_id=process_id, error=str(e))
            raise StoreError("get_jobs_for_process", str(e)) from e

    async def create_job(self, process_id: int, name: str) -> ProcessJob:
        """Insert a job under a process, or return the existing one."""
        existing = await self.get_job(process_id, name)
        if existing:
            return existing

        try:
            async with self.get_session() as session:
                now = _now()
                job = ProcessJob(process=process_id, name=name, created_at=now, updated_at=now)
                session.add(job)
                await session.commit()
                await session.refresh(job)
                logger.info("Job created", process_id=process_id, job_id=job.id, name=name)
                return job

        except IntegrityError:
            existing = await self.get_job(process_id, name)
            if existing:
                return existing
            raise StoreError("create_job", f"job '{name}' vanished after conflict")

        except SQLAlchemyError as e:
            logger.error("Failed to create job", process_id=process_id, name=name, error=str(e))
            raise StoreError("create_job", str(e)) from e

    # ============================================================================
    # Machines
    # ============================================================================

    async def register_machine(self, name: str) -> ProcessMachine:
        """Create the machine row, or bump its last-seen timestamp."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessMachine).where(ProcessMachine.name == name)
                result = await session.execute(stmt)
                machine = result.scalar_one_or_none()

                now = _now()
                if machine:
                    machine.updated_at = now
                else:
                    machine = ProcessMachine(name=name, created_at=now, updated_at=now)
                    session.add(machine)

                await session.commit()
                await session.refresh(machine)
                return machine

        except IntegrityError:
            # Registered concurrently; the row exists now
            return await self.register_machine(name)

        except SQLAlchemyError as e:
            logger.error("Failed to register machine", machine=name, error=str(e))
            raise StoreError("register_machine", str(e)) from e

    # ============================================================================
    # Job Logs
    # ============================================================================

    async def add_job_log(self, process_id: int, job_id: int, machine: str, message: str,
                          log_type: ProcessLogType = ProcessLogType.GENERIC) -> ProcessJobLog:
        """Append a durable log entry for a job."""
        try:
            async with self.get_session() as session:
                now = _now()
                entry = ProcessJobLog(
                    process=process_id,
                    job=job_id,
                    machine=machine,
                    type=ProcessLogType(log_type).value,
                    message=message,
                    created_at=now,
                    updated_at=now
                )
                session.add(entry)
                await session.commit()
                await session.refresh(entry)
                return entry

        except SQLAlchemyError as e:
            logger.error("Failed to add job log", process_id=process_id, job_id=job_id, error=str(e))
            raise StoreError("add_job_log", str(e)) from e

    async def get_job_logs(self, process_id: int, job_id: int, machine: Optional[str] = None,
                           limit: Optional[int] = None) -> List[ProcessJobLog]:
        """Get log entries for a job, oldest first."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessJobLog).where(
                    ProcessJobLog.process == process_id,
                    ProcessJobLog.job == job_id
                )
                if machine is not None:
                    stmt = stmt.where(ProcessJobLog.machine == machine)
                stmt = stmt.order_by(ProcessJobLog.id)
                if limit:
                    stmt = stmt.limit(limit)

                result = await session.execute(stmt)
                return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error("Failed to get job logs", process_id=process_id, job_id=job_id, error=str(e))
            raise StoreError("get_job_logs", str(e)) from e

    # ============================================================================
    # Process Cache (append-only, partitioned by machine)
    # ============================================================================

    async def cache_exists(self, process_id: int, job_id: int, machine: str) -> bool:
        """Check whether any cache record exists without fetching the set."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessCache.id).where(
                    ProcessCache.process == process_id,
                    ProcessCache.job == job_id,
                    ProcessCache.machine == machine
                ).limit(1)
                result = await session.execute(stmt)
                return result.scalar_one_or_none() is not None

        except SQLAlchemyError as e:
            logger.error("Failed to check cache", process_id=process_id, job_id=job_id, error=str(e))
            raise StoreError("cache_exists", str(e)) from e

    async def cache_key_exists(self, process_id: int, job_id: int, machine: str, key: str) -> bool:
        """Check whether a cache record exists for a key."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessCache.id).where(
                    ProcessCache.process == process_id,
                    ProcessCache.job == job_id,
                    ProcessCache.machine == machine,
                    ProcessCache.key == key
                ).limit(1)
                result = await session.execute(stmt)
                return result.scalar_one_or_none() is not None

        except SQLAlchemyError as e:
            logger.error("Failed to check cache key", key=key, error=str(e))
            raise StoreError("cache_key_exists", str(e)) from e

    async def fetch_cache(self, process_id: int, job_id: int, machine: str) -> List[ProcessCache]:
        """Get every cache record for a job on a machine, in creation order."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessCache).where(
                    ProcessCache.process == process_id,
                    ProcessCache.job == job_id,
                    ProcessCache.machine == machine
                ).order_by(ProcessCache.id)
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error("Failed to fetch cache", process_id=process_id, job_id=job_id, error=str(e))
            raise StoreError("fetch_cache", str(e)) from e

    async def query_cache(self, process_id: int, job_id: int, machine: str, key: str) -> List[ProcessCache]:
        """Get the cache records stored under a key, in creation order."""
        try:
            async with self.get_session() as session:
                stmt = select(ProcessCache).where(
                    ProcessCache.process == process_id,
                    ProcessCache.job == job_id,
                    ProcessCache.machine == machine,
                    ProcessCache.key == key
                ).order_by(ProcessCache.id)
                result = await session.execute(stmt)
                return list(result.scalars().all())

        except SQLAlchemyError as e:
            logger.error("Failed to query cache", key=key, error=str(e))
            raise StoreError("query_cache", str(e)) from e

    async def insert_cache(self, process_id: int, job_id: int, machine: str, key: str,
                           value: str, timestamp: int) -> ProcessCache:
        """Append a cache record. Timestamps are supplied by the caller."""
        try:
            async with self.get_session() as session:
                record = ProcessCache(
                    process=process_id,
                    job=job_id,
                    machine=machine,
                    key=key,
                    value=value,
                    created_at=timestamp,
                    updated_at=timestamp
                )
                session.add(record)
                await session.commit()
                await session.refresh(record)
                return record

        except SQLAlchemyError as e:
            logger.error("Failed to insert cache", key=key, error=str(e))
            raise StoreError("insert_cache", str(e)) from e
