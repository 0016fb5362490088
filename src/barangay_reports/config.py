from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

ALLOWED_PAGE_SIZES = (5, 10, 20, 50)


class InputConfig(BaseModel):
    mode: Literal["json", "http"] = "json"
    data_dir: str | None = "data"
    base_url: str | None = None
    api_token: str | None = None
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class PageConfig(BaseModel):
    width: float = Field(default=210.0, gt=0.0)
    height: float = Field(default=297.0, gt=0.0)
    break_height: float = Field(default=270.0, gt=0.0)
    margin_top: float = Field(default=20.0, ge=0.0)
    margin_left: float = Field(default=14.0, ge=0.0)
    margin_right: float = Field(default=14.0, ge=0.0)
    banner_height: float = Field(default=12.0, ge=0.0)


class ChartConfig(BaseModel):
    pie_height: float = Field(default=55.0, gt=0.0)
    bar_height: float = Field(default=50.0, gt=0.0)
    pie_radius: float = Field(default=20.0, gt=0.0)
    chart_column_width: float = Field(default=100.0, gt=0.0)
    legend_step: float = Field(default=6.0, gt=0.0)
    interpretation_width_chars: int = Field(default=45, ge=10)
    line_height: float = Field(default=5.0, gt=0.0)
    max_series_points: int = Field(default=12, ge=2)


class ReportConfig(BaseModel):
    title: str = "Barangay Report Summary"
    organization: str = "Barangay Niugan"
    banner_color: str = "#B91C1C"
    status_matching: Literal["canonical", "substring"] = "canonical"
    detail_subgroup: Literal["seniors", "pwd", "fourps", "indigenous", "slp"] = "seniors"


class BrowseConfig(BaseModel):
    page_size: int = 10

    @field_validator("page_size")
    @classmethod
    def _check_page_size(cls, value: int) -> int:
        if value not in ALLOWED_PAGE_SIZES:
            allowed = ", ".join(str(size) for size in ALLOWED_PAGE_SIZES)
            raise ValueError(f"page_size must be one of {allowed}, got {value}")
        return value


class OutputsConfig(BaseModel):
    document_name: str = "barangay_report.pdf"
    summary_csv_name: str = "barangay_report.csv"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    input: InputConfig = Field(default_factory=InputConfig)
    page: PageConfig = Field(default_factory=PageConfig)
    charts: ChartConfig = Field(default_factory=ChartConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    browse: BrowseConfig = Field(default_factory=BrowseConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _resolve_optional_path(path_value: str | None, base_dir: Path) -> str | None:
    if not path_value:
        return None
    candidate = Path(path_value)
    if candidate.is_absolute():
        return str(candidate)
    return str((base_dir / candidate).resolve())


def load_config(path: Path) -> AppConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    base_dir = path.resolve().parent

    config.input.data_dir = _resolve_optional_path(config.input.data_dir, base_dir)
    config.input.base_url = config.input.base_url or os.getenv("BARANGAY_REPORTS_API_URL")
    config.input.api_token = config.input.api_token or os.getenv("BARANGAY_REPORTS_API_TOKEN")
    if config.page.break_height > config.page.height:
        raise ValueError("page.break_height must not exceed page.height")
    if config.page.margin_top >= config.page.break_height:
        raise ValueError("page.margin_top must be above page.break_height")
    return config
