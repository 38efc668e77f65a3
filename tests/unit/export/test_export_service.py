"""Tests for ExportService: creation, the generation pipeline and management."""

import csv
import json
from datetime import datetime
from io import BytesIO, StringIO
from pathlib import Path

from openpyxl import load_workbook

from reportmanager.db.models.report import Report
from reportmanager.domain.enums import ExportStatus, ExportTrigger
from reportmanager.domain.models import CombinedTarget, FilterSnapshot, SingleTarget
from reportmanager.export.merge import SOURCE_COLUMN
from reportmanager.export.service import build_filename, format_file_size
from reportmanager.workers.queue import GENERATE_EXPORT_TASK


class TestCreate:
    async def test_single_export_is_pending_with_snapshot(self, export_service):
        filters = FilterSnapshot(date_range="last7days", field_handles=("email",), site_ids=(3,))
        export = await export_service.create_export("forms", 1, "csv", filters, ExportTrigger.API, "ops")

        assert export.status == ExportStatus.PENDING.value
        assert export.progress == 0
        assert export.target == SingleTarget(entity_id=1)
        assert export.entity_name == "Contact Form"
        assert export.filename == "forms_contact_2024-01-01_02-00-01.csv"
        assert export.field_handles_used == ["email"]
        assert export.site_ids_used == [3]
        assert export.triggered_by == "api"
        assert export.triggered_by_user == "ops"
        assert export.file_path is None and export.file_size is None and export.record_count is None

    async def test_unknown_entity_falls_back_to_export_handle(self, export_service):
        export = await export_service.create_export("forms", 42, "json")
        assert export.entity_name is None
        assert export.filename.startswith("forms_export_")

    async def test_unknown_source_still_creates(self, export_service):
        export = await export_service.create_export("nope", 1, "csv")
        assert export.status == ExportStatus.PENDING.value

    async def test_combined_target_is_explicit(self, export_service):
        export = await export_service.create_combined_export("forms", [1, 2], "csv")

        assert export.target == CombinedTarget(entity_ids=(1, 2))
        assert export.entity_id is None
        assert export.entity_name == "Combined"
        assert export.filename == "forms_combined_2024-01-01_02-00-01.csv"

    async def test_exports_for_report_by_mode(self, export_service, session):
        report = Report(
            name="R", handle="r", data_source="forms", entity_ids=[1, 2], date_range="all",
            field_handles=[], export_format="csv", export_mode="separate",
        )
        session.add(report)
        await session.flush()

        separate = await export_service.create_exports_for_report(report, ExportTrigger.SCHEDULED)
        assert [e.entity_id for e in separate] == [1, 2]
        assert all(e.report_id == report.id and e.triggered_by == "scheduled" for e in separate)

        report.export_mode = "combined"
        combined = await export_service.create_exports_for_report(report, ExportTrigger.SCHEDULED)
        assert len(combined) == 1 and combined[0].target_kind == "combined"

    async def test_snapshot_is_a_copy_of_report_filters(self, export_service, session):
        report = Report(
            name="R", handle="r", data_source="forms", entity_ids=[1], date_range="last7days",
            field_handles=["email"], export_format="csv", export_mode="separate", site_id=4,
        )
        session.add(report)
        await session.flush()
        [export] = await export_service.create_exports_for_report(report, ExportTrigger.MANUAL)

        report.field_handles = ["name"]
        report.date_range = "all"
        assert export.field_handles_used == ["email"]
        assert export.date_range_used == "last7days"
        assert export.site_ids_used == [4]

    def test_filename_convention(self):
        assert build_filename("forms", "contact", "xlsx", datetime(2024, 5, 6, 7, 8, 9)) == (
            "forms_contact_2024-05-06_07-08-09.xlsx"
        )

    async def test_queue_export(self, export_service, queue):
        export = await export_service.create_export("forms", 1, "csv")
        export_service.queue_export(export)
        [(task, delay)] = queue.enqueued
        assert task.name == GENERATE_EXPORT_TASK
        assert task.kwargs == {"export_id": str(export.id)}
        assert delay == 0


class TestGenerate:
    async def test_csv_completes(self, export_service, session):
        export = await export_service.create_export("forms", 1, "csv")
        await session.commit()

        assert await export_service.generate(export.id) is True

        export = await export_service.get_export(export.id)
        assert export.status == ExportStatus.COMPLETED.value
        assert export.progress == 100
        assert export.record_count == 2
        assert export.completed_at is not None
        content = Path(export.file_path).read_bytes()
        assert export.file_size == len(content)
        rows = list(csv.reader(StringIO(content.decode("utf-8"))))
        assert rows == [["Name", "Email"], ["Ada", "ada@example.com"], ["Grace", "grace@example.com"]]

    async def test_second_generate_is_a_noop(self, export_service, session):
        export = await export_service.create_export("forms", 1, "json")
        await session.commit()

        assert await export_service.generate(export.id) is True
        first = await export_service.get_export(export.id)
        completed_at = first.completed_at

        assert await export_service.generate(export.id) is False
        again = await export_service.get_export(export.id)
        assert again.status == ExportStatus.COMPLETED.value
        assert again.completed_at == completed_at

    async def test_field_handles_and_date_range_are_honored(self, export_service, session, source):
        filters = FilterSnapshot(date_range="last7days", field_handles=("email",))
        export = await export_service.create_export("forms", 1, "json", filters)
        await session.commit()

        assert await export_service.generate(export.id)
        export = await export_service.get_export(export.id)
        records = json.loads(Path(export.file_path).read_text("utf-8"))
        # Grace's row (2023-12-20) is outside the last 7 days of the fake source
        assert records == [{"Email": "ada@example.com"}]

    async def test_explicit_bounds_win_over_shorthand(self, export_service, session, source):
        filters = FilterSnapshot(
            date_range="last7days", date_start=datetime(2023, 12, 1), date_end=datetime(2023, 12, 25),
        )
        export = await export_service.create_export("forms", 1, "csv", filters)
        await session.commit()

        assert await export_service.generate(export.id)
        export = await export_service.get_export(export.id)
        assert export.record_count == 1
        assert source.row_calls[-1].date_start == datetime(2023, 12, 1)

    async def test_combined_xlsx(self, export_service, session):
        export = await export_service.create_combined_export("forms", [1, 2], "xlsx")
        await session.commit()

        assert await export_service.generate(export.id)
        export = await export_service.get_export(export.id)
        ws = load_workbook(BytesIO(Path(export.file_path).read_bytes())).active
        assert ws.title == "Combined"
        assert [c.value for c in ws[1]] == [SOURCE_COLUMN, "Name", "Email", "Rating"]
        assert [c.value for c in ws[4]] == ["Feedback", None, "linus@example.com", 5]
        assert export.record_count == 3

    async def test_unknown_data_source_fails_export(self, export_service, session):
        export = await export_service.create_export("missing", 1, "csv")
        await session.commit()

        assert await export_service.generate(export.id) is False
        export = await export_service.get_export(export.id)
        assert export.status == ExportStatus.FAILED.value
        assert "missing" in export.error_message
        assert export.completed_at is not None
        assert export.file_path is None

    async def test_unsupported_format_fails_export(self, export_service, session):
        export = await export_service.create_export("forms", 1, "pdf")
        await session.commit()

        assert await export_service.generate(export.id) is False
        export = await export_service.get_export(export.id)
        assert "Unsupported export format" in export.error_message

    async def test_missing_entity_fails_export(self, export_service, session):
        export = await export_service.create_export("forms", 99, "csv")
        await session.commit()

        assert await export_service.generate(export.id) is False
        export = await export_service.get_export(export.id)
        assert export.status == ExportStatus.FAILED.value
        assert "99" in export.error_message

    async def test_unavailable_source_fails_export(self, export_service, session, source):
        export = await export_service.create_export("forms", 1, "csv")
        await session.commit()
        source.available = False

        assert await export_service.generate(export.id) is False
        export = await export_service.get_export(export.id)
        assert "not available" in export.error_message

    async def test_provider_error_fails_export(self, export_service, session, source):
        export = await export_service.create_export("forms", 1, "csv")
        await session.commit()
        source.fail_rows = True

        assert await export_service.generate(export.id) is False
        export = await export_service.get_export(export.id)
        assert export.error_message == "provider exploded"
        assert export.record_count is None

    async def test_filename_collision_gets_suffix(self, export_service, session, storage):
        first = await export_service.create_export("forms", 1, "csv")
        second = await export_service.create_export("forms", 1, "csv")
        await session.commit()
        assert first.filename == second.filename

        assert await export_service.generate(first.id)
        assert await export_service.generate(second.id)
        first = await export_service.get_export(first.id)
        second = await export_service.get_export(second.id)

        assert first.file_path != second.file_path
        assert second.filename == "forms_contact_2024-01-01_02-00-01-1.csv"
        assert Path(second.file_path).exists()


class TestManagement:
    async def test_delete_removes_file_and_record(self, export_service, session):
        export = await export_service.create_export("forms", 1, "csv")
        await session.commit()
        await export_service.generate(export.id)
        export = await export_service.get_export(export.id)
        path = Path(export.file_path)

        assert await export_service.delete_export(export.id) is True
        assert not path.exists()
        assert await export_service.get_export(export.id) is None

    async def test_delete_unknown(self, export_service):
        import uuid

        assert await export_service.delete_export(uuid.uuid4()) is False

    async def test_file_content_and_exists(self, export_service, session):
        export = await export_service.create_export("forms", 1, "csv")
        assert await export_service.file_exists(export) is False
        assert await export_service.get_file_content(export) is None
        await session.commit()

        await export_service.generate(export.id)
        export = await export_service.get_export(export.id)
        assert await export_service.file_exists(export) is True
        assert (await export_service.get_file_content(export)).startswith(b"Name,Email")

    async def test_stats(self, export_service, session):
        done = await export_service.create_export("forms", 1, "csv")
        await export_service.create_export("forms", 2, "csv")
        await session.commit()
        await export_service.generate(done.id)

        stats = await export_service.get_stats()
        assert stats["total"] == 2
        assert stats["completed"] == 1
        assert stats["pending"] == 1
        assert stats["failed"] == 0
        assert stats["total_file_size"] > 0

    def test_format_file_size(self):
        assert format_file_size(512) == "512 bytes"
        assert format_file_size(2048) == "2.00 KB"
        assert format_file_size(5 * 1024 ** 2) == "5.00 MB"
        assert format_file_size(3 * 1024 ** 3) == "3.00 GB"
