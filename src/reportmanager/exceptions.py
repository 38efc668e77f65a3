"""Error taxonomy for report generation."""


class ReportManagerError(Exception):
    """Base class for every error raised by reportmanager."""


class ConfigurationError(ReportManagerError):
    """An export or report refers to something that is not configured."""


class DataSourceNotFoundError(ConfigurationError):
    def __init__(self, handle: str) -> None:
        super().__init__(f"Data source not found: {handle}")
        self.handle = handle


class UnsupportedFormatError(ConfigurationError):
    def __init__(self, fmt: str) -> None:
        super().__init__(f"Unsupported export format: {fmt}")
        self.format = fmt


class UnknownScheduleError(ConfigurationError, ValueError):
    def __init__(self, schedule: str) -> None:
        super().__init__(f"Unknown schedule: {schedule}")
        self.schedule = schedule


class DataSourceError(ReportManagerError):
    """The underlying data provider could not serve a request."""


class DataSourceUnavailableError(DataSourceError):
    def __init__(self, handle: str) -> None:
        super().__init__(f"Data source is not available: {handle}")
        self.handle = handle


class EntityNotFoundError(DataSourceError):
    def __init__(self, handle: str, entity_id: int) -> None:
        super().__init__(f"Entity {entity_id} not found in data source {handle}")
        self.handle = handle
        self.entity_id = entity_id


class StorageError(ReportManagerError):
    """Raised when an export file cannot be written, read or deleted."""


class InvalidStatusTransitionError(ReportManagerError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Illegal export status transition: {current} -> {target}")
        self.current = current
        self.target = target


class ReportValidationError(ReportManagerError):
    """A report configuration failed validation."""
