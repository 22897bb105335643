from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Optional, Tuple, Union

import pandas as pd

from dashboard_core.data import parse_timestamp


GRANULARITIES: Tuple[str, ...] = ("hour", "day", "week", "month")
DEFAULT_GRANULARITY = "hour"
STATUS_CLASSES: Tuple[str, ...] = ("2XX", "3XX", "4XX", "5XX")


@dataclass(frozen=True)
class RangeFilter:
    """Half-open range [low, high) over ordered keys."""

    low: Any
    high: Any

    def mask(self, keys: pd.Series) -> pd.Series:
        # NaN/NaT compare False on both sides, so missing keys never match.
        return ((keys >= self.low) & (keys < self.high)).fillna(False).astype(bool)


@dataclass(frozen=True)
class SetFilter:
    keys: FrozenSet[Any]

    def mask(self, keys: pd.Series) -> pd.Series:
        return keys.isin(self.keys).astype(bool)


Filter = Union[RangeFilter, SetFilter]


@dataclass(frozen=True)
class DashboardFilters:
    prefixes: List[str] = field(default_factory=list)
    granularity: str = DEFAULT_GRANULARITY
    time_range: Optional[Tuple[pd.Timestamp, pd.Timestamp]] = None
    status_classes: List[str] = field(default_factory=list)
    response_time_range: Optional[Tuple[float, float]] = None


def normalize_granularity(value: object) -> str:
    g = str(value or "").strip().lower()
    return g if g in GRANULARITIES else DEFAULT_GRANULARITY


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    out: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        if s and s not in out:
            out.append(s)
    return out


def _range_bounds(raw: object) -> Optional[Tuple[object, object]]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        low, high = raw.get("low"), raw.get("high")
    else:
        try:
            low, high = raw  # type: ignore[misc]
        except (TypeError, ValueError):
            return None
    if low is None or high is None:
        return None
    return low, high


def _as_time_range(raw: object) -> Optional[Tuple[pd.Timestamp, pd.Timestamp]]:
    bounds = _range_bounds(raw)
    if bounds is None:
        return None
    low, high = parse_timestamp(bounds[0]), parse_timestamp(bounds[1])
    if pd.isna(low) or pd.isna(high):
        return None
    return low, high


def _as_number_range(raw: object) -> Optional[Tuple[float, float]]:
    bounds = _range_bounds(raw)
    if bounds is None:
        return None
    try:
        low, high = float(bounds[0]), float(bounds[1])  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if pd.isna(low) or pd.isna(high):
        return None
    return low, high


def normalize_filters(raw: dict) -> DashboardFilters:
    """Turn a loose mapping (API payload, UI state) into DashboardFilters.

    Malformed pieces are dropped rather than rejected: a bad range means no
    filter on that chart, an unknown granularity falls back to hourly ticks.
    """
    status_classes = [s.upper() for s in _as_str_list(raw.get("status_classes"))]
    status_classes = [s for s in STATUS_CLASSES if s in status_classes]

    return DashboardFilters(
        prefixes=_as_str_list(raw.get("prefixes")),
        granularity=normalize_granularity(raw.get("granularity")),
        time_range=_as_time_range(raw.get("time_range")),
        status_classes=status_classes,
        response_time_range=_as_number_range(raw.get("response_time_range")),
    )
