from enum import Enum


class Schedule(str, Enum):
    """Named fixed-slot schedules."""

    DISABLED = "disabled"
    EVERY_6_HOURS = "every6hours"
    EVERY_12_HOURS = "every12hours"
    DAILY = "daily"
    DAILY_2AM = "daily2am"
    WEEKLY = "weekly"


class DateRange(str, Enum):
    """Date range shorthands understood by data sources."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    LAST_90_DAYS = "last90days"
    LAST_365_DAYS = "last365days"
    LAST_YEAR = "lastyear"
    ALL = "all"
    CUSTOM = "custom"
