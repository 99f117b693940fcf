from __future__ import annotations

from typing import Any, Dict, List, Optional

from pandas.api.types import pandas_dtype
from pydantic import BaseModel, Field, field_validator, model_validator

from .rules import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_DECIMAL,
    DEFAULT_STRATEGY,
    DEFAULT_THOUSANDS,
)


class ReadOptions(BaseModel):
    encoding: Optional[str] = Field(default=None, examples=["utf-8", "cp1252"])
    decimal: str = DEFAULT_DECIMAL
    thousands: Optional[str] = DEFAULT_THOUSANDS
    date_columns: List[str] = Field(default_factory=list, examples=[["birthdate"]])
    date_format: str = DEFAULT_DATE_FORMAT
    dtypes: Dict[str, str] = Field(default_factory=dict, examples=[{"height": "float64"}])
    strict_delimiters: bool = False

    @field_validator("decimal", "thousands")
    @classmethod
    def _single_char(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) != 1:
            raise ValueError("numeric marks must be a single character")
        return value

    @field_validator("dtypes")
    @classmethod
    def _known_dtypes(cls, value: Dict[str, str]) -> Dict[str, str]:
        for column, dtype in value.items():
            try:
                pandas_dtype(dtype)
            except TypeError as exc:
                raise ValueError(f"column {column!r}: {exc}") from exc
        return value

    @model_validator(mode="after")
    def _distinct_marks(self) -> "ReadOptions":
        if self.thousands is not None and self.thousands == self.decimal:
            raise ValueError("thousands and decimal marks must differ")
        return self


class ReportSummary(BaseModel):
    rows: int = 0
    columns: int = 0
    files: int = 0
    strategy: str = DEFAULT_STRATEGY


class ReportItem(BaseModel):
    issue: str
    value: Optional[str] = None
    action: str


class RepairReport(BaseModel):
    summary: ReportSummary
    warnings: List[ReportItem] = Field(default_factory=list)


class RepairResponse(BaseModel):
    columns: List[str]
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    report: RepairReport


class HealthResponse(BaseModel):
    ok: bool = True
