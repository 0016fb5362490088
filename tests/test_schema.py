from __future__ import annotations

import pytest

from barangay_reports.io.schema import CATEGORIES, SCHEMAS, require_category, tag_record


def test_require_category_normalizes_names_and_api_alias() -> None:
    assert require_category(" Residents ") == "residents"
    assert require_category("feedback") == "complaints"

    with pytest.raises(ValueError, match="Unknown category 'permits'"):
        require_category("permits")


def test_every_category_has_a_schema() -> None:
    assert set(SCHEMAS) == set(CATEGORIES)
    assert SCHEMAS["complaints"].api_name == "feedback"


def test_tag_record_splits_known_fields_relations_and_extras() -> None:
    tagged = tag_record(
        "complaints",
        {
            "feedback_id": 1,
            "status": "PENDING",
            "resident": {"resident_id": 3},
            "priority": "high",
        },
    )

    assert tagged.fields == {"feedback_id": 1, "status": "PENDING"}
    assert tagged.relations == {"resident": {"resident_id": 3}}
    assert tagged.extra == {"priority": "high"}
