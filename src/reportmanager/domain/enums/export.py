from enum import Enum


class ExportTrigger(str, Enum):
    """Who started an export."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"
    API = "api"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"


class ExportMode(str, Enum):
    """How a multi-entity report is materialized."""

    SEPARATE = "separate"
    COMBINED = "combined"


class TargetKind(str, Enum):
    SINGLE = "single"
    COMBINED = "combined"
