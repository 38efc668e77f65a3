from typing import AsyncGenerator

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportmanager.config import Settings
from reportmanager.container import Container
from reportmanager.datasources.registry import DataSourceRegistry
from reportmanager.export.service import ExportService
from reportmanager.storage.base import ExportStorage
from reportmanager.workers.queue import JobQueue


@inject
async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(Provide[Container.session_factory]),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@inject
def get_settings(settings: Settings = Depends(Provide[Container.settings])) -> Settings:
    return settings


@inject
def get_registry(
    registry: DataSourceRegistry = Depends(Provide[Container.data_source_registry]),
) -> DataSourceRegistry:
    return registry


@inject
def get_storage(storage: ExportStorage = Depends(Provide[Container.storage])) -> ExportStorage:
    return storage


@inject
def get_job_queue(job_queue: JobQueue = Depends(Provide[Container.job_queue])) -> JobQueue:
    return job_queue


def get_export_service(
    db: AsyncSession = Depends(get_db),
    registry: DataSourceRegistry = Depends(get_registry),
    storage: ExportStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    job_queue: JobQueue = Depends(get_job_queue),
) -> ExportService:
    return ExportService(db, registry, storage, settings, job_queue=job_queue)
