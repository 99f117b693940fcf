from __future__ import annotations

import os
import tempfile
import warnings
from typing import List, Optional

import pandas as pd
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from .errors import DelimiterCollisionWarning
from .models import HealthResponse, RepairResponse, ReadOptions
from .repair import read_many
from .rules import (
    DEFAULT_DECIMAL,
    DEFAULT_RIGHT_DELIMITER,
    DEFAULT_STRATEGY,
    DEFAULT_THOUSANDS,
    DEFAULT_WRONG_DELIMITER,
)

app = FastAPI(
    title="header-repair",
    description="Load delimited files whose header uses the wrong delimiter",
    version="0.1.0",
)


def _records(df: pd.DataFrame, date_format: str) -> list[dict]:
    out = df.copy()
    for column in out.columns:
        if pd.api.types.is_datetime64_any_dtype(out[column]):
            out[column] = out[column].dt.strftime(date_format)
    out = out.astype(object).where(out.notna(), None)
    return out.to_dict(orient="records")


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/repair", response_model=RepairResponse)
async def repair_csv(
    files: List[UploadFile] = File(...),
    wrong_delimiter: str = Form(DEFAULT_WRONG_DELIMITER),
    right_delimiter: str = Form(DEFAULT_RIGHT_DELIMITER),
    strategy: str = Form(DEFAULT_STRATEGY),
    date_columns: str = Form(""),
    decimal: str = Form(DEFAULT_DECIMAL),
    thousands: Optional[str] = Form(DEFAULT_THOUSANDS),
    strict: bool = Form(False),
):
    for file in files:
        if not (file.filename or "").lower().endswith(".csv"):
            raise HTTPException(status_code=422, detail="Only CSV files are supported")

    try:
        options = ReadOptions(
            decimal=decimal,
            thousands=thousands or None,
            date_columns=[c.strip() for c in date_columns.split(",") if c.strip()],
            strict_delimiters=strict,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))

    with tempfile.TemporaryDirectory() as tmp:
        paths = []
        for i, file in enumerate(files):
            # index prefix keeps upload order and tolerates duplicate names
            path = os.path.join(tmp, f"{i:04d}_{os.path.basename(file.filename)}")
            with open(path, "wb") as fh:
                fh.write(await file.read())
            paths.append(path)

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", DelimiterCollisionWarning)
            try:
                df = read_many(paths, wrong_delimiter, right_delimiter, strategy, options)
            except ValueError as exc:
                raise HTTPException(status_code=422, detail=str(exc))

    report_warnings = [
        {
            "issue": "delimiter_collision",
            "value": str(w.message),
            "action": "replaced_in_body",
        }
        for w in caught
        if issubclass(w.category, DelimiterCollisionWarning)
    ]

    return {
        "columns": [str(c) for c in df.columns],
        "rows": _records(df, options.date_format),
        "report": {
            "summary": {
                "rows": len(df),
                "columns": len(df.columns),
                "files": len(files),
                "strategy": strategy,
            },
            "warnings": report_warnings,
        },
    }
