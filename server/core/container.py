"""Dependency injection container for the job cache."""

from dependency_injector import containers, providers

from core.config import Settings
from core.database import Database
from services.jobs.runner import JobRunner


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Database shared by every job in the process
    database = providers.Singleton(
        Database,
        settings=settings
    )

    job_runner = providers.Singleton(
        JobRunner
    )


# Global container instance
container = Container()
