from enum import Enum


class ExportStatus(str, Enum):
    """Export lifecycle state."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExportStatus.COMPLETED, ExportStatus.FAILED)

    def can_transition_to(self, target: "ExportStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


# pending -> processing -> completed | failed; terminal states never move again
ALLOWED_TRANSITIONS: dict[ExportStatus, frozenset[ExportStatus]] = {
    ExportStatus.PENDING: frozenset({ExportStatus.PROCESSING}),
    ExportStatus.PROCESSING: frozenset({ExportStatus.COMPLETED, ExportStatus.FAILED}),
    ExportStatus.COMPLETED: frozenset(),
    ExportStatus.FAILED: frozenset(),
}
