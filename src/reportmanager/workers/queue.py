"""Job queue seam between the core and the external task queue."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

GENERATE_EXPORT_TASK = "reportmanager.generate_export"
PROCESS_SCHEDULED_REPORTS_TASK = "reportmanager.process_scheduled_reports"


@dataclass(frozen=True)
class QueuedTask:
    """A task name plus JSON-serializable kwargs; enough to re-run it statelessly."""

    name: str
    kwargs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def generate_export(cls, export_id) -> "QueuedTask":
        return cls(GENERATE_EXPORT_TASK, {"export_id": str(export_id)})

    @classmethod
    def process_scheduled_reports(cls, reschedule: bool = True, next_run_label: str | None = None) -> "QueuedTask":
        return cls(
            PROCESS_SCHEDULED_REPORTS_TASK,
            {"reschedule": reschedule, "next_run_label": next_run_label},
        )


class JobQueue(ABC):
    """At-least-once queue with delayed execution."""

    @abstractmethod
    def enqueue(self, task: QueuedTask, delay_seconds: int = 0) -> None: ...

    @abstractmethod
    def has_pending(self, task_name: str) -> bool:
        """True when a task with this name is waiting or reserved."""

    @abstractmethod
    def clear_pending(self, task_name: str) -> None:
        """Forget the pending marker once a run has ended without queuing another."""


class CeleryJobQueue(JobQueue):
    """Celery transport plus a Redis marker for tasks that must stay single.

    Worker inspection only sees tasks a live worker has already pulled, and
    returns nothing when no worker replies in time, so tracked tasks also
    leave a marker key that outlives their countdown.
    """

    TRACKED_TASKS = frozenset({PROCESS_SCHEDULED_REPORTS_TASK})
    MARKER_PREFIX = "reportmanager:pending:"
    MARKER_GRACE_SECONDS = 3600

    def __init__(self, celery_app, redis_client) -> None:
        self._app = celery_app
        self._redis = redis_client

    def _marker(self, task_name: str) -> str:
        return f"{self.MARKER_PREFIX}{task_name}"

    def enqueue(self, task: QueuedTask, delay_seconds: int = 0) -> None:
        countdown = max(0, int(delay_seconds)) or None
        self._app.send_task(task.name, kwargs=task.kwargs, countdown=countdown)
        if task.name in self.TRACKED_TASKS:
            ttl = (countdown or 0) + self.MARKER_GRACE_SECONDS
            self._redis.set(self._marker(task.name), "1", ex=ttl)
        logger.info("Queued %s (delay=%ss)", task.name, delay_seconds)

    def has_pending(self, task_name: str) -> bool:
        if task_name in self.TRACKED_TASKS and self._redis.exists(self._marker(task_name)):
            return True
        inspector = self._app.control.inspect(timeout=1.0)
        for requests in (inspector.scheduled() or {}, inspector.reserved() or {}):
            for entries in requests.values():
                for entry in entries:
                    # scheduled() wraps the request under "request"
                    request = entry.get("request", entry)
                    if request.get("name") == task_name:
                        return True
        return False

    def clear_pending(self, task_name: str) -> None:
        if task_name in self.TRACKED_TASKS:
            self._redis.delete(self._marker(task_name))
            logger.info("Cleared pending marker for %s", task_name)
