from reportmanager.domain.enums import (
    DateRange,
    ExportFormat,
    ExportMode,
    ExportStatus,
    ExportTrigger,
    Schedule,
    TargetKind,
)


class TestEnumsAreStringMixin:
    """All enums use (str, Enum) so they serialize to strings in JSON and DB."""

    def test_export_status_is_str(self):
        assert isinstance(ExportStatus.PENDING, str)
        assert ExportStatus.PENDING == "pending"

    def test_schedule_values(self):
        assert [s.value for s in Schedule] == [
            "disabled", "every6hours", "every12hours", "daily", "daily2am", "weekly",
        ]

    def test_date_range_values(self):
        assert DateRange("last30days") is DateRange.LAST_30_DAYS
        assert DateRange.ALL == "all"

    def test_export_enums(self):
        assert {f.value for f in ExportFormat} == {"csv", "json", "xlsx"}
        assert {m.value for m in ExportMode} == {"separate", "combined"}
        assert {t.value for t in ExportTrigger} == {"manual", "scheduled", "api"}
        assert {k.value for k in TargetKind} == {"single", "combined"}


class TestExportStatusTransitions:
    def test_happy_path(self):
        assert ExportStatus.PENDING.can_transition_to(ExportStatus.PROCESSING)
        assert ExportStatus.PROCESSING.can_transition_to(ExportStatus.COMPLETED)
        assert ExportStatus.PROCESSING.can_transition_to(ExportStatus.FAILED)

    def test_no_skipping_processing(self):
        assert not ExportStatus.PENDING.can_transition_to(ExportStatus.COMPLETED)
        assert not ExportStatus.PENDING.can_transition_to(ExportStatus.FAILED)

    def test_terminal_states_are_final(self):
        for status in (ExportStatus.COMPLETED, ExportStatus.FAILED):
            assert status.is_terminal
            assert not any(status.can_transition_to(target) for target in ExportStatus)

    def test_non_terminal(self):
        assert not ExportStatus.PENDING.is_terminal
        assert not ExportStatus.PROCESSING.is_terminal
