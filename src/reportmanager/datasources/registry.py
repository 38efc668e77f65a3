"""DataSourceRegistry: handle → data source lookup, populated at startup."""

import importlib
import logging
from typing import Optional

from reportmanager.datasources.base import DataSource
from reportmanager.domain.models import EntityInfo

logger = logging.getLogger(__name__)


class DataSourceRegistry:
    def __init__(self) -> None:
        self._sources: dict[str, DataSource] = {}

    def register(self, source: DataSource) -> None:
        if not source.handle:
            raise ValueError(f"{type(source).__name__} has no handle")
        if source.handle in self._sources:
            logger.warning("Replacing data source %s", source.handle)
        self._sources[source.handle] = source

    def get(self, handle: str) -> Optional[DataSource]:
        source = self._sources.get(handle)
        if source is None:
            logger.warning("Data source not found: %s", handle)
        return source

    def handles(self) -> list[str]:
        return list(self._sources)

    def all(self) -> list[DataSource]:
        return list(self._sources.values())

    def is_available(self, handle: str) -> bool:
        source = self._sources.get(handle)
        return source is not None and source.is_available()

    def available(self) -> list[DataSource]:
        return [s for s in self._sources.values() if s.is_available()]

    async def all_entities(self) -> dict[str, list[EntityInfo]]:
        """Entities of every available source; a failing source lists as empty."""
        result: dict[str, list[EntityInfo]] = {}
        for source in self.available():
            try:
                result[source.handle] = await source.get_available_entities()
            except Exception:
                logger.exception("Failed to list entities for data source %s", source.handle)
                result[source.handle] = []
        return result


def load_data_source(path: str) -> DataSource:
    """Instantiate a provider from a "package.module:ClassName" path."""
    module_name, _, class_name = path.partition(":")
    if not class_name:
        raise ValueError(f"Invalid data source path (expected module:Class): {path}")
    cls = getattr(importlib.import_module(module_name), class_name)
    if not (isinstance(cls, type) and issubclass(cls, DataSource)):
        raise TypeError(f"{path} is not a DataSource subclass")
    return cls()


def build_default_registry(paths: list[str] | None = None) -> DataSourceRegistry:
    """Create a DataSourceRegistry with every configured provider registered."""
    registry = DataSourceRegistry()
    for path in paths or []:
        registry.register(load_data_source(path))
        logger.info("Registered data source %s", path)
    return registry
