from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd


TABLE_COLUMNS = ["time", "country", "request_path", "request_ip", "response_time", "response_status"]


def format_time(value: object) -> str:
    """D/MM/YYYY HH:mm:ss, or "" when the timestamp is unreadable."""
    if value is None or pd.isna(value):
        return ""
    ts = pd.Timestamp(value)
    return f"{ts.day}/{ts:%m/%Y %H:%M:%S}"


def _text(value: object) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value)


def _number(value: object) -> Any:
    if value is None or pd.isna(value):
        return ""
    out = float(value)  # type: ignore[arg-type]
    return int(out) if out.is_integer() else out


def table_rows(records: pd.DataFrame) -> List[Dict[str, Any]]:
    """Row projections for the detail table, in record order."""
    rows: List[Dict[str, Any]] = []
    for rec in records.itertuples(index=False):
        rows.append(
            {
                "time": format_time(rec.timestamp),
                "country": _text(rec.country),
                "request_path": _text(rec.request_path),
                "request_ip": _text(rec.client_ip),
                "response_time": _number(rec.response_time),
                "response_status": _number(rec.status_code),
            }
        )
    return rows


def table_frame(records: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame(table_rows(records), columns=TABLE_COLUMNS)
