from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

Category = Literal[
    "residents",
    "staff",
    "certificates",
    "complaints",
    "announcements",
    "households",
]

CATEGORIES: tuple[Category, ...] = (
    "residents",
    "staff",
    "certificates",
    "complaints",
    "announcements",
    "households",
)


@dataclass(frozen=True)
class RelationSpec:
    """A nested single-record relation and how its fields map onto flat columns."""

    field: str
    renames: Mapping[str, str]
    name_field: str | None = None


@dataclass(frozen=True)
class RelationArraySpec:
    """A nested list of related records expanded into indexed columns."""

    field: str
    prefix: str
    id_key: str


RELATIONS: dict[str, RelationSpec] = {
    spec.field: spec
    for spec in (
        RelationSpec(
            field="resident",
            renames={
                "resident_id": "resident_id",
                "first_name": "resident_first_name",
                "last_name": "resident_last_name",
                "contact_no": "resident_contact_no",
                "address": "resident_address",
            },
        ),
        RelationSpec(
            field="headResident",
            renames={
                "resident_id": "head_resident_id",
                "first_name": "head_resident_first_name",
                "last_name": "head_resident_last_name",
            },
        ),
        RelationSpec(
            field="headStaff",
            renames={
                "staff_id": "head_staff_id",
                "first_name": "head_staff_first_name",
                "last_name": "head_staff_last_name",
            },
        ),
        RelationSpec(
            field="respondedBy",
            renames={"user_id": "responded_by_id"},
            name_field="responded_by_name",
        ),
        RelationSpec(
            field="approver",
            renames={"user_id": "approved_by_id"},
            name_field="approved_by_name",
        ),
        RelationSpec(
            field="category",
            renames={
                "category_id": "category_id",
                "english_name": "category_name",
                "tagalog_name": "category_tagalog_name",
                "group": "category_group",
            },
        ),
        RelationSpec(
            field="postedBy",
            renames={"user_id": "posted_by_id"},
            name_field="posted_by_name",
        ),
    )
}

RELATION_ARRAYS: dict[str, RelationArraySpec] = {
    spec.field: spec
    for spec in (
        RelationArraySpec(field="members", prefix="member", id_key="resident_id"),
        RelationArraySpec(field="staff_members", prefix="staff_member", id_key="staff_id"),
    )
}


@dataclass(frozen=True)
class CategorySchema:
    category: Category
    label: str
    api_name: str
    id_field: str
    date_field: str | None
    fields: frozenset[str]
    relations: frozenset[str] = frozenset()


SCHEMAS: dict[Category, CategorySchema] = {
    "residents": CategorySchema(
        category="residents",
        label="Residents",
        api_name="residents",
        id_field="resident_id",
        date_field="created_at",
        fields=frozenset(
            {
                "resident_id",
                "first_name",
                "middle_name",
                "last_name",
                "gender",
                "birthdate",
                "contact_no",
                "address",
                "created_at",
                "is_4ps_member",
                "is_indigenous",
                "is_slp_beneficiary",
                "is_pwd",
                "senior_mode",
            }
        ),
    ),
    "staff": CategorySchema(
        category="staff",
        label="Staff",
        api_name="staff",
        id_field="staff_id",
        date_field="created_at",
        fields=frozenset(
            {"staff_id", "first_name", "last_name", "contact_no", "address", "created_at"}
        ),
    ),
    "certificates": CategorySchema(
        category="certificates",
        label="Certificates",
        api_name="certificates",
        id_field="request_id",
        date_field="requested_at",
        fields=frozenset(
            {
                "request_id",
                "certificate_type",
                "purpose",
                "status",
                "requested_at",
                "approved_at",
                "claimed_at",
                "resident_id",
            }
        ),
        relations=frozenset({"resident", "approver"}),
    ),
    "complaints": CategorySchema(
        category="complaints",
        label="Complaints",
        api_name="feedback",
        id_field="feedback_id",
        date_field="submitted_at",
        fields=frozenset(
            {
                "feedback_id",
                "proof_file",
                "status",
                "response",
                "response_proof_file",
                "submitted_at",
                "responded_at",
                "resident_id",
                "responded_by",
            }
        ),
        relations=frozenset({"resident", "category", "respondedBy"}),
    ),
    "announcements": CategorySchema(
        category="announcements",
        label="Announcements",
        api_name="announcements",
        id_field="announcement_id",
        date_field="posted_at",
        fields=frozenset({"announcement_id", "title", "content", "posted_at", "is_public"}),
        relations=frozenset({"postedBy"}),
    ),
    "households": CategorySchema(
        category="households",
        label="Households",
        api_name="households",
        id_field="id",
        date_field="created_at",
        fields=frozenset({"id", "address", "created_at"}),
        relations=frozenset({"headResident", "headStaff", "members", "staff_members"}),
    ),
}


@dataclass(frozen=True)
class TaggedRecord:
    """A raw record split against its category schema.

    ``extra`` holds every field the schema does not name; it is carried
    through flattening untouched so unexpected upstream columns still reach
    the on-screen tables.
    """

    category: Category
    fields: dict[str, Any]
    relations: dict[str, Any]
    extra: dict[str, Any] = field(default_factory=dict)


def require_category(value: str) -> Category:
    normalized = str(value or "").strip().lower()
    if normalized == "feedback":
        normalized = "complaints"
    if normalized not in SCHEMAS:
        allowed = ", ".join(CATEGORIES)
        raise ValueError(f"Unknown category '{value}'. Expected one of: {allowed}")
    return normalized  # type: ignore[return-value]


def tag_record(category: Category, record: Mapping[str, Any]) -> TaggedRecord:
    schema = SCHEMAS[category]
    fields: dict[str, Any] = {}
    relations: dict[str, Any] = {}
    extra: dict[str, Any] = {}
    for key, value in record.items():
        if key in schema.relations:
            relations[key] = value
        elif key in schema.fields:
            fields[key] = value
        else:
            extra[key] = value
    return TaggedRecord(category=category, fields=fields, relations=relations, extra=extra)
