from __future__ import annotations

import asyncio
import json
from datetime import date
from pathlib import Path

import httpx
import pytest

from barangay_reports.config import AppConfig
from barangay_reports.io.sources import (
    DateRange,
    HttpRecordSource,
    JsonDirectorySource,
    collect_records,
    fetch_all,
    source_from_config,
)

CERTIFICATES = [
    {"request_id": 101, "status": "PENDING", "requested_at": "2024-03-02T09:00:00Z"},
    {"request_id": 102, "status": "APPROVED", "requested_at": "2024-03-05T10:00:00Z"},
    {"request_id": 103, "status": "CLAIMED", "requested_at": "2024-03-08T11:00:00Z"},
    {"request_id": 104, "status": "REJECTED", "requested_at": None},
]


def _write_exports(directory: Path) -> None:
    (directory / "certificates.json").write_text(
        json.dumps({"details": CERTIFICATES}), encoding="utf-8"
    )
    (directory / "feedback.json").write_text(
        json.dumps([{"feedback_id": 1, "status": "PENDING"}]), encoding="utf-8"
    )


def test_json_source_reads_details_objects_and_lists(tmp_path: Path) -> None:
    _write_exports(tmp_path)
    source = JsonDirectorySource(tmp_path)

    certificates = asyncio.run(source.fetch("certificates"))
    complaints = asyncio.run(source.fetch("complaints"))
    staff = asyncio.run(source.fetch("staff"))

    assert [row["request_id"] for row in certificates] == [101, 102, 103, 104]
    assert complaints == [{"feedback_id": 1, "status": "PENDING"}]
    assert staff == []


def test_json_source_filters_by_inclusive_date_range_and_id(tmp_path: Path) -> None:
    _write_exports(tmp_path)
    source = JsonDirectorySource(tmp_path)

    ranged = asyncio.run(
        source.fetch(
            "certificates", date_range=DateRange(start=date(2024, 3, 5), end=date(2024, 3, 8))
        )
    )
    by_id = asyncio.run(source.fetch("certificates", entity_id="103"))

    assert [row["request_id"] for row in ranged] == [102, 103]
    assert [row["request_id"] for row in by_id] == [103]


def test_json_source_rejects_unexpected_payload(tmp_path: Path) -> None:
    (tmp_path / "staff.json").write_text(json.dumps({"rows": []}), encoding="utf-8")

    with pytest.raises(ValueError, match="details"):
        asyncio.run(JsonDirectorySource(tmp_path).fetch("staff"))


def test_date_range_rejects_reversed_bounds() -> None:
    with pytest.raises(ValueError, match="after end"):
        DateRange(start=date(2024, 3, 9), end=date(2024, 3, 1))


def test_http_source_sends_category_range_and_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"details": [{"feedback_id": 7}]})

    source = HttpRecordSource(
        "https://portal.example/api/admin/reports",
        token="secret",
        transport=httpx.MockTransport(handler),
    )

    rows = asyncio.run(
        source.fetch(
            "complaints",
            date_range=DateRange(start=date(2024, 1, 1), end=date(2024, 1, 31)),
            entity_id="7",
        )
    )

    assert rows == [{"feedback_id": 7}]
    params = seen[0].url.params
    assert params["category"] == "feedback"
    assert params["from"] == "2024-01-01"
    assert params["to"] == "2024-01-31"
    assert params["id"] == "7"
    assert seen[0].headers["Authorization"] == "Bearer secret"


def test_fetch_all_absorbs_failed_categories(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["category"] == "staff":
            return httpx.Response(500, json={"message": "boom"})
        category = request.url.params["category"]
        return httpx.Response(200, json={"details": [{"category": category}]})

    source = HttpRecordSource("https://portal.example/api", transport=httpx.MockTransport(handler))

    records = asyncio.run(fetch_all(source, ["residents", "staff", "complaints"]))

    assert list(records) == ["residents", "staff", "complaints"]
    assert records["residents"] == [{"category": "residents"}]
    assert records["staff"] == []
    assert records["complaints"] == [{"category": "feedback"}]
    assert "Failed to fetch staff" in caplog.text


def test_collect_records_runs_every_category(tmp_path: Path) -> None:
    _write_exports(tmp_path)

    records = collect_records(JsonDirectorySource(tmp_path))

    assert set(records) == {
        "residents",
        "staff",
        "certificates",
        "complaints",
        "announcements",
        "households",
    }
    assert len(records["certificates"]) == 4
    assert records["households"] == []


def test_source_from_config_validates_required_settings(tmp_path: Path) -> None:
    cfg = AppConfig.model_validate({"input": {"mode": "http"}})
    with pytest.raises(ValueError, match="base_url"):
        source_from_config(cfg)

    cfg = AppConfig.model_validate({"input": {"mode": "json", "data_dir": str(tmp_path)}})
    assert isinstance(source_from_config(cfg), JsonDirectorySource)
