from __future__ import annotations

import io
import json
from dataclasses import dataclass
from typing import Any

import pandas as pd

from teamhub.core.schema import ReportRecord

EXPORT_FORMATS = {
    "json": "application/json",
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@dataclass(slots=True)
class ExportedFile:
    filename: str
    media_type: str
    content: bytes


def build_export_payload(report: ReportRecord) -> dict[str, Any]:
    return {
        "id": report.id,
        "title": report.title,
        "description": report.description,
        "type": report.type,
        "status": report.status,
        "progress": report.progress,
        "data": report.data,
        "metadata": report.metadata,
        "createdAt": report.created_at,
        "createdBy": report.created_by,
        "team": report.team,
    }


def export_report(report: ReportRecord, fmt: str = "json") -> ExportedFile:
    fmt = (fmt or "json").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"unsupported export format: {fmt}")

    payload = build_export_payload(report)
    filename = f"report-{report.id}.{fmt}"
    if fmt == "json":
        content = json.dumps(payload, ensure_ascii=False, indent=2, default=str).encode("utf-8")
        return ExportedFile(filename, EXPORT_FORMATS[fmt], content)

    df = pd.json_normalize(payload, sep=".")
    # lists survive flattening as python reprs otherwise
    for column in df.columns:
        df[column] = df[column].map(lambda value: json.dumps(value, default=str) if isinstance(value, list) else value)

    if fmt == "csv":
        content = df.to_csv(index=False).encode("utf-8")
    else:
        buffer = io.BytesIO()
        df.to_excel(buffer, index=False, sheet_name="report", engine="openpyxl")
        content = buffer.getvalue()
    return ExportedFile(filename, EXPORT_FORMATS[fmt], content)
