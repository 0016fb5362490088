from __future__ import annotations

from barangay_reports.features.flatten import flatten, flatten_records


def _certificate() -> dict:
    return {
        "request_id": 102,
        "certificate_type": "Certificate of Indigency",
        "status": "APPROVED",
        "resident": {
            "resident_id": 2,
            "first_name": "Jose",
            "last_name": "Reyes",
            "contact_no": "0918",
            "address": "Purok 2",
        },
        "approver": {"user_id": 7, "username": "secretary"},
    }


def _household() -> dict:
    return {
        "id": 401,
        "address": "Purok 2",
        "headResident": {"resident_id": 2, "first_name": "Jose", "last_name": "Reyes"},
        "headStaff": None,
        "members": [
            {"resident_id": 2, "first_name": "Jose", "last_name": "Reyes"},
            {"resident_id": 3, "first_name": "Ana", "last_name": "Cruz"},
        ],
        "staff_members": [],
    }


def test_flatten_renames_single_relations() -> None:
    row = flatten(_certificate())

    assert row["resident_first_name"] == "Jose"
    assert row["resident_address"] == "Purok 2"
    assert row["approved_by_id"] == 7
    assert row["approved_by_name"] == "secretary"
    assert "resident" not in row
    assert "approver" not in row


def test_flatten_drops_null_relations() -> None:
    record = _certificate()
    record["approver"] = None

    row = flatten(record)

    assert "approved_by_id" not in row
    assert "approver" not in row


def test_flatten_expands_relation_arrays_with_counts() -> None:
    row = flatten(_household())

    assert row["head_resident_id"] == 2
    assert row["member_count"] == 2
    assert row["member_1_id"] == 2
    assert row["member_2_first_name"] == "Ana"
    assert row["staff_member_count"] == 0
    assert not any(key.startswith("head_staff_") for key in row)


def test_flatten_display_name_falls_back_to_full_name() -> None:
    row = flatten({"postedBy": {"user_id": 3, "first_name": "Liza", "last_name": "Garcia"}})

    assert row["posted_by_id"] == 3
    assert row["posted_by_name"] == "Liza Garcia"


def test_flatten_expands_unknown_nested_values_with_prefix() -> None:
    row = flatten(
        {
            "id": 1,
            "meta": {"source": "web", "geo": {"lat": 14.6}},
            "tags": ["urgent", "road"],
        }
    )

    assert row["meta_source"] == "web"
    assert row["meta_geo_lat"] == 14.6
    assert row["tags_count"] == 2
    assert row["tags"] == "urgent, road"


def test_flatten_is_idempotent() -> None:
    records = [
        _certificate(),
        _household(),
        {"id": 9, "meta": {"nested": {"deeper": [1, 2]}}, "items": [{"a": 1}, {"a": 2}]},
        {"category": "peace", "status": "PENDING"},
        {},
    ]
    for record in records:
        once = flatten(record)
        assert flatten(once) == once


def test_flatten_records_skips_non_mapping_records(caplog) -> None:
    rows = flatten_records("certificates", [_certificate(), "oops", None])

    assert len(rows) == 1
    assert rows[0]["request_id"] == 102
    assert "Skipping non-mapping certificates record" in caplog.text


def test_flatten_records_carries_unrecognized_fields() -> None:
    record = _certificate()
    record["tracking_code"] = "ABC-1"

    rows = flatten_records("certificates", [record])

    assert rows[0]["tracking_code"] == "ABC-1"
