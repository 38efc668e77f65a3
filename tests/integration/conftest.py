import pytest
from httpx import ASGITransport, AsyncClient

from reportmanager.api.deps import get_db, get_job_queue, get_registry, get_settings, get_storage
from reportmanager.api.main import app


@pytest.fixture()
async def client(session, registry, storage, settings, queue):
    """API client wired to the test session, the fake data source and local storage."""
    app.dependency_overrides[get_db] = lambda: session
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_job_queue] = lambda: queue
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
