from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd


logger = logging.getLogger(__name__)

# Record column -> field name in the search backend documents.
FIELD_NAMES: Dict[str, str] = {
    "timestamp": "request_at",
    "status_code": "response_status",
    "response_time": "response_time",
    "request_path": "request_path",
    "user_id": "user_id",
    "country": "request_ip_country",
    "client_ip": "request_ip",
}

RECORD_COLUMNS: List[str] = list(FIELD_NAMES)
TEXT_COLUMNS: List[str] = ["request_path", "user_id", "country", "client_ip"]


def read_field(document: object, field: str, default: Any = None) -> Any:
    """Return the first value of ``document["fields"][field]`` or ``default``.

    Documents come from the backend as ``{"fields": {name: [value, ...]}}``.
    Any deviation from that shape yields ``default``; this never raises.
    """
    if not isinstance(document, Mapping):
        return default
    fields = document.get("fields")
    if not isinstance(fields, Mapping):
        return default
    values = fields.get(field)
    if not isinstance(values, (list, tuple)) or not values:
        return default
    value = values[0]
    return default if value is None else value


def parse_timestamp(value: object) -> pd.Timestamp:
    """Parse ISO-8601 strings or epoch milliseconds into a naive UTC timestamp (NaT on failure)."""
    if value is None or isinstance(value, bool):
        return pd.NaT
    try:
        if isinstance(value, (int, float, np.integer, np.floating)):
            ts = pd.Timestamp(value, unit="ms")
        elif isinstance(value, (str, datetime, pd.Timestamp, np.datetime64)):
            ts = pd.Timestamp(value)
        else:
            return pd.NaT
    except (TypeError, ValueError, OverflowError):
        return pd.NaT
    if pd.isna(ts):
        return pd.NaT
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def coerce_str_safe(df: pd.DataFrame, cols: Iterable[str]) -> pd.DataFrame:
    for col in cols:
        if col in df.columns:
            series = df[col].astype("string").str.strip()
            series = series.replace({"": pd.NA})
            df[col] = series
    return df


def parse_status_codes(values: pd.Series) -> pd.Series:
    codes = pd.to_numeric(values, errors="coerce").astype(float)
    codes = codes.where(codes % 1 == 0)
    return codes.astype("Int64")


def parse_response_times(values: pd.Series) -> pd.Series:
    times = pd.to_numeric(values, errors="coerce").astype(float)
    return times.where(times >= 0)


def records_from_documents(documents: Optional[Sequence[object]]) -> pd.DataFrame:
    """Build the record table for one fetched batch.

    Row order follows the batch; missing or malformed fields become NA.
    """
    documents = list(documents or [])
    rows = [{col: read_field(doc, name) for col, name in FIELD_NAMES.items()} for doc in documents]
    df = pd.DataFrame(rows, columns=RECORD_COLUMNS, dtype=object)

    df["timestamp"] = pd.Series(
        [parse_timestamp(v) for v in df["timestamp"]], index=df.index, dtype="datetime64[ns]"
    )
    df["status_code"] = parse_status_codes(df["status_code"])
    df["response_time"] = parse_response_times(df["response_time"])
    df = coerce_str_safe(df, TEXT_COLUMNS)

    unreadable = int(df["timestamp"].isna().sum())
    if unreadable:
        logger.debug("%d of %d documents have no readable request_at", unreadable, len(df))
    return df


def filter_by_prefixes(records: pd.DataFrame, prefixes: Optional[Sequence[str]]) -> pd.DataFrame:
    """Keep records whose request path starts with any of ``prefixes``.

    An empty or missing prefix list is a no-op and returns ``records`` itself.
    """
    if not prefixes:
        return records
    paths = records["request_path"].astype("string")
    mask = paths.str.startswith(tuple(str(p) for p in prefixes)).fillna(False).astype(bool)
    return records[mask]


def prefix_options(records: pd.DataFrame, configured: Sequence[str] = ()) -> List[str]:
    """Choices for the prefix multi-select.

    Configured API frontend prefixes win; otherwise the first path segment
    of every request path in the batch.
    """
    if configured:
        return sorted({str(p) for p in configured if str(p).strip()})
    if records.empty:
        return []
    paths = records["request_path"].dropna().astype(str)
    segments = paths.str.extract(r"^(/[^/?#]+/)", expand=False).dropna()
    return sorted(segments.unique().tolist())


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))
