"""Data sources API: registered sources, their entities and fields."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from reportmanager.api.deps import get_registry
from reportmanager.api.schemas.datasources import (
    DataSourceResponse,
    EntityCountResponse,
    EntityListResponse,
    FieldListResponse,
)
from reportmanager.datasources.base import DataSource
from reportmanager.datasources.registry import DataSourceRegistry
from reportmanager.domain.models import QueryOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/data-sources", tags=["data-sources"])

RegistryDep = Annotated[DataSourceRegistry, Depends(get_registry)]


def _source_or_404(registry: DataSourceRegistry, handle: str) -> DataSource:
    source = registry.get(handle)
    if source is None:
        raise HTTPException(status_code=404, detail="Data source not found")
    return source


@router.get("", response_model=list[DataSourceResponse])
async def list_data_sources(registry: RegistryDep) -> list[DataSourceResponse]:
    return [
        DataSourceResponse(
            handle=s.handle,
            name=s.display_name or s.handle,
            description=s.description,
            available=s.is_available(),
        )
        for s in registry.all()
    ]


@router.get("/{handle}/entities", response_model=EntityListResponse)
async def list_entities(handle: str, registry: RegistryDep) -> EntityListResponse:
    """Entities of a source; an unavailable or failing source lists as empty."""
    source = _source_or_404(registry, handle)
    entities = []
    if source.is_available():
        try:
            entities = await source.get_available_entities()
        except Exception:
            logger.exception("Failed to list entities for %s", handle)
    return EntityListResponse(data_source=handle, entities=entities)


@router.get("/{handle}/entities/{entity_id}/fields", response_model=FieldListResponse)
async def list_fields(handle: str, entity_id: int, registry: RegistryDep) -> FieldListResponse:
    source = _source_or_404(registry, handle)
    fields = []
    if source.is_available():
        try:
            fields = await source.get_entity_fields(entity_id)
        except Exception:
            logger.exception("Failed to list fields for %s entity %s", handle, entity_id)
    return FieldListResponse(entity_id=entity_id, fields=fields)


@router.get("/{handle}/entities/{entity_id}/count", response_model=EntityCountResponse)
async def count_rows(
    handle: str,
    entity_id: int,
    registry: RegistryDep,
    date_range: str = Query("all"),
) -> EntityCountResponse:
    source = _source_or_404(registry, handle)
    count = 0
    if source.is_available():
        try:
            count = await source.get_row_count(entity_id, QueryOptions(date_range=date_range))
        except Exception:
            logger.exception("Failed to count rows for %s entity %s", handle, entity_id)
    return EntityCountResponse(entity_id=entity_id, count=count)
