from reportmanager.domain.models.datasource import EntityInfo, FieldInfo
from reportmanager.domain.models.export import (
    CombinedTarget,
    ExportData,
    ExportTarget,
    FilterSnapshot,
    QueryOptions,
    SingleTarget,
)

__all__ = [
    "CombinedTarget",
    "EntityInfo",
    "ExportData",
    "ExportTarget",
    "FieldInfo",
    "FilterSnapshot",
    "QueryOptions",
    "SingleTarget",
]
