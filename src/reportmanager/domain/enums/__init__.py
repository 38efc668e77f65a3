from reportmanager.domain.enums.export import ExportFormat, ExportMode, ExportTrigger, TargetKind
from reportmanager.domain.enums.schedule import DateRange, Schedule
from reportmanager.domain.enums.status import ALLOWED_TRANSITIONS, ExportStatus

__all__ = [
    "ALLOWED_TRANSITIONS",
    "DateRange",
    "ExportFormat",
    "ExportMode",
    "ExportStatus",
    "ExportTrigger",
    "Schedule",
    "TargetKind",
]
