"""SQLModel tables for process, job and machine identities and job logs."""

from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Text, UniqueConstraint


class ProcessLogType(str, Enum):
    """Kinds of job log entries."""
    GENERIC = "generic"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


class Process(SQLModel, table=True):
    """Logical unit of work, resolved once by name and reused."""

    __tablename__ = "processes"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True, max_length=255)
    created_at: int = Field(default=0)
    updated_at: int = Field(default=0)


class ProcessJob(SQLModel, table=True):
    """Named unit of execution scoped to a process."""

    __tablename__ = "process_jobs"
    __table_args__ = (UniqueConstraint("process", "name", name="uq_process_jobs_process_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    process: int = Field(default=0, foreign_key="processes.id", index=True)
    name: str = Field(max_length=255)
    created_at: int = Field(default=0)
    updated_at: int = Field(default=0)


class ProcessMachine(SQLModel, table=True):
    """Executing host. updated_at doubles as last-seen."""

    __tablename__ = "process_machines"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True, max_length=255)
    created_at: int = Field(default=0)
    updated_at: int = Field(default=0)


class ProcessJobLog(SQLModel, table=True):
    """Durable job event log, scoped to process, job and machine."""

    __tablename__ = "process_job_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    process: int = Field(default=0, index=True)
    job: int = Field(default=0, index=True)
    machine: str = Field(default="", max_length=255)
    type: str = Field(default=ProcessLogType.GENERIC.value, max_length=20)
    message: str = Field(sa_column=Column(Text, nullable=False))
    created_at: int = Field(default=0)
    updated_at: int = Field(default=0)
