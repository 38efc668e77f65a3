from reportmanager.db.models.export import Export
from reportmanager.db.models.report import Report

__all__ = ["Export", "Report"]
