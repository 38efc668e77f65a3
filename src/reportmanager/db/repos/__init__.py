from reportmanager.db.repos.export_repo import ExportRepo
from reportmanager.db.repos.report_repo import ReportRepo

__all__ = ["ExportRepo", "ReportRepo"]
