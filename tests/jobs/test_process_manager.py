"""Tests for process and job identity resolution."""

import pytest

from core.database import Database
from core.exceptions import IdentityResolutionError
from services.jobs import ProcessManager


class TestProcessManager:
    @pytest.mark.asyncio
    async def test_create_process_is_idempotent(self, database):
        manager = ProcessManager(database)
        await manager.load()

        first = await manager.create_process("build")
        second = await manager.create_process("build")

        assert first.id == second.id
        assert first.id != 0
        assert len(await database.get_all_processes()) == 1

    @pytest.mark.asyncio
    async def test_resolution_shared_across_managers(self, database):
        process_a = await ProcessManager(database).create_process("build")
        other = ProcessManager(database)
        await other.load()
        process_b = await other.create_process("build")
        assert process_a.id == process_b.id

    @pytest.mark.asyncio
    async def test_load_prefetches_processes(self, database):
        await database.create_process("build")
        manager = ProcessManager(database)
        await manager.load()
        assert manager.loaded
        assert "build" in manager._processes

    @pytest.mark.asyncio
    async def test_create_job_scoped_to_process(self, database):
        manager = ProcessManager(database)
        build = await manager.create_process("build")
        deploy = await manager.create_process("deploy")

        compile_build = await manager.create_job(build, "compile")
        compile_deploy = await manager.create_job(deploy, "compile")

        assert compile_build.id != compile_deploy.id
        assert compile_build.process == build.id
        assert (await manager.create_job(build, "compile")).id == compile_build.id

    @pytest.mark.asyncio
    async def test_empty_names_rejected(self, database):
        manager = ProcessManager(database)
        with pytest.raises(IdentityResolutionError):
            await manager.create_process("")

        process = await manager.create_process("build")
        with pytest.raises(IdentityResolutionError):
            await manager.create_job(process, "")

    @pytest.mark.asyncio
    async def test_store_failure_becomes_resolution_error(self, settings):
        manager = ProcessManager(Database(settings))  # never started
        with pytest.raises(IdentityResolutionError):
            await manager.load()
        with pytest.raises(IdentityResolutionError):
            await manager.create_process("build")
