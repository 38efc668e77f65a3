"""Combined export merge: aligns rows of several entities on one header.

Pass 1 unions field labels of every entity behind a leading source column.
Pass 2 places each row's values under the header carrying the same label, so
entities with diverging schemas share columns only where labels match.
"""

import logging
from typing import Any, Optional

from reportmanager.datasources.base import DEFAULT_BATCH_SIZE, DataSource
from reportmanager.domain.models import ExportData, QueryOptions
from reportmanager.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)

SOURCE_COLUMN = "Source"


def build_combined_header(label_lists: list[list[str]]) -> list[str]:
    """Leading source column followed by the first occurrence of every label."""
    header = [SOURCE_COLUMN]
    seen: set[str] = set()
    for labels in label_lists:
        for label in labels:
            if label not in seen:
                seen.add(label)
                header.append(label)
    return header


def align_rows(header: list[str], source_name: str, data: ExportData) -> list[list[Any]]:
    """Re-lay *data* rows on *header*; unmatched positions stay blank."""
    # Column 0 always belongs to the source name, even if a field shares its label
    positions = {label: idx for idx, label in enumerate(header) if idx > 0}
    mapping = [positions.get(label) for label in data.headers]

    aligned = []
    for row in data.rows:
        out: list[Any] = [""] * len(header)
        out[0] = source_name
        for idx, value in enumerate(row):
            if idx >= len(mapping):
                break
            target = mapping[idx]
            if target is not None and value is not None:
                out[target] = value
        aligned.append(out)
    return aligned


async def merge_entities(
    source: DataSource,
    entity_ids: list[int] | tuple[int, ...],
    field_handles: list[str] | tuple[str, ...] = (),
    options: Optional[QueryOptions] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> ExportData:
    """Fetch every entity and merge them into one column-aligned table."""
    names: dict[int, str] = {}
    label_lists: list[list[str]] = []
    for entity_id in entity_ids:
        entity = await source.get_entity(entity_id)
        if entity is None:
            raise EntityNotFoundError(source.handle, entity_id)
        names[entity_id] = entity.name
        fields = await source.get_export_fields(entity_id, field_handles)
        label_lists.append([f.label for f in fields])

    header = build_combined_header(label_lists)

    rows: list[list[Any]] = []
    for entity_id in entity_ids:
        data = await source.export_to_array(entity_id, field_handles, options, batch_size=batch_size)
        rows.extend(align_rows(header, names[entity_id], data))
        logger.debug("Merged %d rows from entity %s", data.record_count, entity_id)

    return ExportData(headers=header, rows=rows)
