from datetime import datetime
from typing import Any, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from reportmanager.config import Settings
from reportmanager.datasources.base import DataSource, resolve_date_bounds
from reportmanager.datasources.registry import DataSourceRegistry
from reportmanager.db.models.report import Report
from reportmanager.db.session import Base
import reportmanager.db.models  # noqa: F401
from reportmanager.domain.models import EntityInfo, FieldInfo, QueryOptions
from reportmanager.export.service import ExportService
from reportmanager.storage.local import LocalStorage
from reportmanager.workers.queue import JobQueue, QueuedTask


class FakeClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeDataSource(DataSource):
    """In-memory source: entity id -> (info, fields, rows as dicts keyed by handle)."""

    handle = "forms"
    display_name = "Forms"
    description = "In-memory forms"

    def __init__(self) -> None:
        self.entities: dict[int, EntityInfo] = {}
        self.fields: dict[int, list[FieldInfo]] = {}
        self.rows: dict[int, list[dict[str, Any]]] = {}
        self.available = True
        self.fail_rows = False
        self.row_calls: list[QueryOptions] = []

    def is_available(self) -> bool:
        return self.available

    def add_entity(self, entity_id: int, name: str, handle: str, fields: list[tuple[str, str]], rows: list[dict]):
        self.entities[entity_id] = EntityInfo(id=entity_id, name=name, handle=handle, count=len(rows))
        self.fields[entity_id] = [FieldInfo(handle=h, label=label) for h, label in fields]
        self.rows[entity_id] = rows

    async def get_available_entities(self) -> list[EntityInfo]:
        return list(self.entities.values())

    async def get_entity(self, entity_id: int) -> Optional[EntityInfo]:
        return self.entities.get(entity_id)

    async def get_entity_fields(self, entity_id: int) -> list[FieldInfo]:
        return list(self.fields.get(entity_id, []))

    def _matching(self, entity_id: int, options: QueryOptions) -> list[dict]:
        start, end = resolve_date_bounds(options, datetime(2024, 1, 1, 2, 0, 1))
        rows = []
        for row in self.rows.get(entity_id, []):
            when = row.get("date")
            if when is not None and ((start and when < start) or (end and when > end)):
                continue
            rows.append(row)
        return rows

    async def get_rows(self, entity_id: int, field_handles: list[str], options: QueryOptions) -> list[list[Any]]:
        if self.fail_rows:
            raise RuntimeError("provider exploded")
        self.row_calls.append(options)
        rows = self._matching(entity_id, options)
        end = None if options.limit is None else options.offset + options.limit
        return [[row.get(h) for h in field_handles] for row in rows[options.offset:end]]

    async def get_row_count(self, entity_id: int, options: QueryOptions) -> int:
        return len(self._matching(entity_id, options))


class RecordingQueue(JobQueue):
    def __init__(self) -> None:
        self.enqueued: list[tuple[QueuedTask, int]] = []
        self.pending_names: set[str] = set()
        self.cleared: list[str] = []

    def enqueue(self, task: QueuedTask, delay_seconds: int = 0) -> None:
        self.enqueued.append((task, delay_seconds))

    def has_pending(self, task_name: str) -> bool:
        return task_name in self.pending_names

    def clear_pending(self, task_name: str) -> None:
        self.cleared.append(task_name)
        self.pending_names.discard(task_name)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture()
async def session(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


@pytest.fixture()
def clock():
    return FakeClock(datetime(2024, 1, 1, 2, 0, 1))


@pytest.fixture()
def source():
    src = FakeDataSource()
    src.add_entity(
        1, "Contact Form", "contact",
        [("name", "Name"), ("email", "Email")],
        [
            {"name": "Ada", "email": "ada@example.com", "date": datetime(2023, 12, 31, 10, 0)},
            {"name": "Grace", "email": "grace@example.com", "date": datetime(2023, 12, 20, 9, 0)},
        ],
    )
    src.add_entity(
        2, "Feedback", "feedback",
        [("email", "Email"), ("rating", "Rating")],
        [{"email": "linus@example.com", "rating": 5, "date": datetime(2023, 12, 30, 8, 0)}],
    )
    return src


@pytest.fixture()
def registry(source):
    reg = DataSourceRegistry()
    reg.register(source)
    return reg


@pytest.fixture()
def settings(tmp_path):
    return Settings(_env_file=None, export_path=str(tmp_path / "exports"), csv_include_bom=False)


@pytest.fixture()
def storage(tmp_path):
    return LocalStorage(tmp_path / "exports")


@pytest.fixture()
def queue():
    return RecordingQueue()


@pytest.fixture()
def export_service(session, registry, storage, settings, queue, clock):
    return ExportService(session, registry, storage, settings, job_queue=queue, clock=clock)


@pytest.fixture()
def make_report():
    """Factory for unsaved reports with every column filled in."""

    def _make(**overrides) -> Report:
        fields = dict(
            name="Weekly Contacts",
            handle="",
            data_source="forms",
            entity_ids=[1],
            date_range="last7days",
            field_handles=[],
            export_format="csv",
            export_mode="separate",
            enable_schedule=False,
            schedule="disabled",
            enabled=True,
        )
        fields.update(overrides)
        return Report(**fields)

    return _make
