from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from barangay_reports.io.schema import (
    RELATION_ARRAYS,
    RELATIONS,
    Category,
    RelationArraySpec,
    RelationSpec,
    tag_record,
)

LOGGER = logging.getLogger(__name__)

FlatRow = dict[str, Any]


def _display_name(related: Mapping[str, Any]) -> str | None:
    username = related.get("username")
    if username:
        return str(username)
    parts = [related.get("first_name"), related.get("last_name")]
    joined = " ".join(str(part) for part in parts if part)
    return joined or None


def _flatten_relation(spec: RelationSpec, related: Mapping[str, Any]) -> FlatRow:
    flat: FlatRow = {}
    for source_key, target_key in spec.renames.items():
        if source_key in related:
            flat[target_key] = related[source_key]
    if spec.name_field is not None:
        flat[spec.name_field] = _display_name(related)
    return flat


def _flatten_relation_array(spec: RelationArraySpec, items: list[Any]) -> FlatRow:
    flat: FlatRow = {f"{spec.prefix}_count": len(items)}
    for index, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            flat[f"{spec.prefix}_{index}_id"] = item
            continue
        flat[f"{spec.prefix}_{index}_id"] = item.get(spec.id_key)
        flat[f"{spec.prefix}_{index}_first_name"] = item.get("first_name")
        flat[f"{spec.prefix}_{index}_last_name"] = item.get("last_name")
    return flat


def _flatten_unknown(key: str, value: Any) -> FlatRow:
    if isinstance(value, Mapping):
        flat: FlatRow = {}
        for sub_key, sub_value in value.items():
            flat.update(_flatten_unknown(f"{key}_{sub_key}", sub_value))
        return flat
    if isinstance(value, (list, tuple)):
        flat = {f"{key}_count": len(value)}
        if all(not isinstance(item, (Mapping, list, tuple)) for item in value):
            flat[key] = ", ".join("" if item is None else str(item) for item in value)
            return flat
        for index, item in enumerate(value, start=1):
            flat.update(_flatten_unknown(f"{key}_{index}", item))
        return flat
    return {key: value}


def flatten(record: Mapping[str, Any]) -> FlatRow:
    """Project a raw record onto a single-level row.

    Known relations are renamed through their field maps, known relation
    arrays become a ``*_count`` plus 1-based indexed columns, and any other
    nested value is expanded with its key as prefix. A key only counts as a
    relation when it actually holds a mapping (or list), so a row that is
    already flat passes through unchanged.
    """
    flat: FlatRow = {}
    for key, value in record.items():
        relation = RELATIONS.get(key)
        if relation is not None and (value is None or isinstance(value, Mapping)):
            if value is not None:
                flat.update(_flatten_relation(relation, value))
            continue

        array = RELATION_ARRAYS.get(key)
        if array is not None and (value is None or isinstance(value, (list, tuple))):
            flat.update(_flatten_relation_array(array, list(value or [])))
            continue

        if isinstance(value, (Mapping, list, tuple)):
            flat.update(_flatten_unknown(key, value))
            continue
        flat[key] = value
    return flat


def flatten_records(category: Category, records: Iterable[Mapping[str, Any]]) -> list[FlatRow]:
    rows: list[FlatRow] = []
    unexpected: set[str] = set()
    for record in records:
        if not isinstance(record, Mapping):
            LOGGER.warning("Skipping non-mapping %s record of type %s", category, type(record))
            continue
        unexpected.update(tag_record(category, record).extra)
        rows.append(flatten(record))
    if unexpected:
        LOGGER.debug(
            "Carrying unrecognized %s fields through flattening: %s",
            category,
            ", ".join(sorted(unexpected)),
        )
    return rows
