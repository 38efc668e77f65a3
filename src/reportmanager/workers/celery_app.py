"""Celery application: Redis broker, JSON payloads, late acks for at-least-once delivery."""

import redis
from celery import Celery
from celery.signals import setup_logging

from reportmanager.config import settings
from reportmanager.log import configure_logging

# Redis redelivers unacked messages after this long; it must outlast the
# longest countdown (a weekly schedule) or late acks duplicate the run.
VISIBILITY_TIMEOUT = 8 * 24 * 60 * 60

celery_app = Celery(
    "reportmanager",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["reportmanager.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    broker_transport_options={"visibility_timeout": VISIBILITY_TIMEOUT},
    result_backend_transport_options={"visibility_timeout": VISIBILITY_TIMEOUT},
)


def build_job_queue():
    from reportmanager.workers.queue import CeleryJobQueue

    return CeleryJobQueue(celery_app, redis.Redis.from_url(settings.redis_url))


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging(settings.log_level)
