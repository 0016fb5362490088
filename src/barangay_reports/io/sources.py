from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Protocol

import httpx
import pandas as pd

from barangay_reports.config import AppConfig
from barangay_reports.features.aggregates import parse_dates
from barangay_reports.io.schema import CATEGORIES, SCHEMAS, Category

LOGGER = logging.getLogger(__name__)

Record = dict[str, Any]


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day range; either end may be open."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValueError(f"Date range start {self.start} is after end {self.end}")

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None


class RecordSource(Protocol):
    async def fetch(
        self,
        category: Category,
        *,
        date_range: DateRange | None = None,
        entity_id: str | None = None,
    ) -> list[Record]: ...


def _details(payload: Any, origin: str) -> list[Record]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and isinstance(payload.get("details"), list):
        return list(payload["details"])
    raise ValueError(f"Expected a list or an object with a 'details' list from {origin}")


def filter_by_date(
    records: Sequence[Record],
    field: str | None,
    date_range: DateRange,
) -> list[Record]:
    if field is None or date_range.is_open or not records:
        return list(records)
    values = pd.Series([record.get(field) for record in records], dtype=object)
    dates = parse_dates(values)
    keep = dates.notna()
    if date_range.start is not None:
        keep &= dates >= pd.Timestamp(date_range.start)
    if date_range.end is not None:
        keep &= dates < pd.Timestamp(date_range.end + timedelta(days=1))
    return [record for record, kept in zip(records, keep.tolist()) if kept]


class JsonDirectorySource:
    """Reads ``<category>.json`` exports from a directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, category: Category) -> Path | None:
        schema = SCHEMAS[category]
        for name in dict.fromkeys((category, schema.api_name)):
            candidate = self.directory / f"{name}.json"
            if candidate.exists():
                return candidate
        return None

    def _load(self, category: Category) -> list[Record]:
        path = self._path(category)
        if path is None:
            LOGGER.info("No %s export found in %s", category, self.directory)
            return []
        with path.open("r", encoding="utf-8") as handle:
            return _details(json.load(handle), str(path))

    async def fetch(
        self,
        category: Category,
        *,
        date_range: DateRange | None = None,
        entity_id: str | None = None,
    ) -> list[Record]:
        schema = SCHEMAS[category]
        records = await asyncio.to_thread(self._load, category)
        if entity_id is not None:
            records = [
                record for record in records if str(record.get(schema.id_field)) == str(entity_id)
            ]
        if date_range is not None:
            records = filter_by_date(records, schema.date_field, date_range)
        return records


class HttpRecordSource:
    """Admin reports endpoint: ``GET base_url?category=...`` returning ``details``."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(
        self,
        category: Category,
        *,
        date_range: DateRange | None = None,
        entity_id: str | None = None,
    ) -> list[Record]:
        params: dict[str, str] = {"category": SCHEMAS[category].api_name}
        if date_range is not None and date_range.start is not None:
            params["from"] = date_range.start.isoformat()
        if date_range is not None and date_range.end is not None:
            params["to"] = date_range.end.isoformat()
        if entity_id is not None:
            params["id"] = str(entity_id)

        async with httpx.AsyncClient(
            timeout=self.timeout, headers=self._headers(), transport=self.transport
        ) as client:
            response = await client.get(self.base_url, params=params)
            response.raise_for_status()
            return _details(response.json(), f"{self.base_url} ({category})")


def source_from_config(config: AppConfig) -> RecordSource:
    if config.input.mode == "http":
        if not config.input.base_url:
            raise ValueError("input.base_url must be set when input.mode is 'http'")
        return HttpRecordSource(
            base_url=config.input.base_url,
            token=config.input.api_token,
            timeout=config.input.timeout_seconds,
        )
    if not config.input.data_dir:
        raise ValueError("input.data_dir must be set when input.mode is 'json'")
    return JsonDirectorySource(Path(config.input.data_dir))


async def fetch_all(
    source: RecordSource,
    categories: Iterable[Category] = CATEGORIES,
    date_range: DateRange | None = None,
) -> dict[Category, list[Record]]:
    """Fetch every category concurrently; a failed category yields no rows.

    Results are only returned once every fetch has settled, so callers never
    see a partially filled mapping.
    """
    wanted = list(dict.fromkeys(categories))
    results = await asyncio.gather(
        *(source.fetch(category, date_range=date_range) for category in wanted),
        return_exceptions=True,
    )
    records: dict[Category, list[Record]] = {}
    for category, result in zip(wanted, results):
        if isinstance(result, BaseException):
            LOGGER.warning("Failed to fetch %s: %s", category, result)
            records[category] = []
            continue
        records[category] = result
        LOGGER.info("Fetched %d %s record(s)", len(result), category)
    return records


def collect_records(
    source: RecordSource,
    categories: Iterable[Category] = CATEGORIES,
    date_range: DateRange | None = None,
) -> dict[Category, list[Record]]:
    return asyncio.run(fetch_all(source, categories=categories, date_range=date_range))
