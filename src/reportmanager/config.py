from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from reportmanager.domain.enums import DateRange, ExportFormat, Schedule


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "report_manager"
    redis_url: str = "redis://localhost:6379/0"
    debug: bool = False
    log_level: str = "INFO"

    # Scheduling
    enable_scheduled_reports: bool = True
    default_schedule: str = Schedule.DAILY_2AM.value
    initial_schedule_delay: int = 300  # seconds before the bootstrap run

    # Exports
    max_export_batch_size: int = Field(10000, ge=100, le=100000)
    export_retention: int = 30  # days; 0 or less keeps exports forever
    auto_cleanup_exports: bool = True
    export_path: str = "storage/report-manager/exports"
    export_volume_url: str = ""
    export_volume_token: str = ""
    export_volume_sub_path: str = "report-manager/exports"
    default_export_format: str = ExportFormat.CSV.value
    csv_delimiter: str = ","
    csv_enclosure: str = '"'
    csv_include_bom: bool = True

    # Listing
    default_date_range: str = DateRange.LAST_30_DAYS.value
    items_per_page: int = Field(50, ge=1, le=500)

    # Providers registered at startup, as "package.module:ClassName"
    data_sources: list[str] = []

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @field_validator("default_schedule")
    @classmethod
    def check_schedule(cls, v: str) -> str:
        if v not in {s.value for s in Schedule}:
            raise ValueError(f"unknown schedule: {v}")
        return v

    @field_validator("default_export_format")
    @classmethod
    def check_format(cls, v: str) -> str:
        if v not in {f.value for f in ExportFormat}:
            raise ValueError(f"unknown export format: {v}")
        return v

    @field_validator("default_date_range")
    @classmethod
    def check_date_range(cls, v: str) -> str:
        if v not in {d.value for d in DateRange}:
            raise ValueError(f"unknown date range: {v}")
        return v

    @field_validator("csv_delimiter", "csv_enclosure")
    @classmethod
    def check_single_char(cls, v: str) -> str:
        if len(v) != 1:
            raise ValueError("must be a single character")
        return v

    @field_validator("export_path")
    @classmethod
    def check_export_path(cls, v: str) -> str:
        if ".." in v:
            raise ValueError("export path must not contain '..'")
        return v

    class Config:
        env_file = ".env"


settings = Settings()
