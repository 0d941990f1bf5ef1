"""Append-only process cache records.

Keys are not unique: several records may share a key, and readers see them in
insertion (id) order. Rows are partitioned by machine so hosts never see each
other's entries for the same process and job.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Text


class ProcessCache(SQLModel, table=True):
    """A single cached value for a (process, job, machine, key)."""

    __tablename__ = "process_cache"

    id: Optional[int] = Field(default=None, primary_key=True)
    process: int = Field(default=0, index=True)  # 0 = unset
    job: int = Field(default=0, index=True)  # 0 = unset
    machine: str = Field(default="", index=True, max_length=255)
    key: str = Field(default="", index=True, max_length=255)
    value: str = Field(sa_column=Column(Text, nullable=False))
    created_at: int = Field(default=0)  # epoch seconds, stamped by caller
    updated_at: int = Field(default=0)
