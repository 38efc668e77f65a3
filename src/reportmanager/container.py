from dependency_injector import containers, providers

from reportmanager.config import Settings
from reportmanager.datasources.registry import build_default_registry
from reportmanager.db.session import build_engine, build_session_factory
from reportmanager.storage.factory import build_storage


def build_job_queue():
    from reportmanager.workers.celery_app import build_job_queue as build_celery_job_queue

    return build_celery_job_queue()


class Container(containers.DeclarativeContainer):
    wiring_config = containers.WiringConfiguration(modules=["reportmanager.api.deps"])

    settings = providers.Singleton(Settings)

    engine = providers.Singleton(
        build_engine,
        database_url=settings.provided.database_url,
        echo=settings.provided.debug,
    )

    session_factory = providers.Singleton(
        build_session_factory,
        engine=engine,
    )

    data_source_registry = providers.Singleton(
        build_default_registry,
        paths=settings.provided.data_sources,
    )

    storage = providers.Singleton(build_storage, settings=settings)

    job_queue = providers.Singleton(build_job_queue)
