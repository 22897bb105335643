from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import pandas as pd

from dashboard_core.filters import DEFAULT_GRANULARITY, Filter, normalize_granularity


TIME = "time"
STATUS = "status"
RESPONSE_TIME = "response_time"
DIMENSION_NAMES = (TIME, STATUS, RESPONSE_TIME)

_STATUS_CLASS_BY_DIGIT = {2: "2XX", 3: "3XX", 4: "4XX", 5: "5XX"}


def time_bucket_keys(records: pd.DataFrame, granularity: str = DEFAULT_GRANULARITY) -> pd.Series:
    """Truncate each timestamp to the start of its hour/day/week/month."""
    ts = records["timestamp"]
    g = normalize_granularity(granularity)
    if g == "hour":
        keys = ts.dt.floor("h")
    elif g == "day":
        keys = ts.dt.floor("D")
    elif g == "week":
        # Weeks start on Monday.
        keys = ts.dt.floor("D") - pd.to_timedelta(ts.dt.dayofweek, unit="D")
    else:
        keys = ts.dt.to_period("M").dt.start_time
    return keys.rename(TIME)


def bucket_end(key: pd.Timestamp, granularity: str = DEFAULT_GRANULARITY) -> pd.Timestamp:
    """Exclusive upper bound of the bucket starting at ``key``."""
    g = normalize_granularity(granularity)
    if g == "month":
        return key + pd.DateOffset(months=1)
    return key + {"hour": pd.Timedelta(hours=1), "day": pd.Timedelta(days=1), "week": pd.Timedelta(weeks=1)}[g]


def status_class_keys(records: pd.DataFrame) -> pd.Series:
    """Map status codes to 2XX..5XX; anything else gets the empty key."""
    codes = records["status_code"].astype(float)
    digits = (codes // 100).where((codes >= 100) & (codes <= 599))
    classes = digits.map(_STATUS_CLASS_BY_DIGIT).astype(object)
    return classes.where(classes.notna(), "").rename(STATUS)


def response_time_keys(records: pd.DataFrame) -> pd.Series:
    return records["response_time"].astype(float).rename(RESPONSE_TIME)


@dataclass
class Dimension:
    """Keys for every record of one dataset plus that axis' active filter."""

    name: str
    keys: pd.Series
    filter: Optional[Filter] = None

    def set_filter(self, flt: Optional[Filter]) -> None:
        self.filter = flt

    def mask(self) -> pd.Series:
        if self.filter is None:
            return pd.Series(True, index=self.keys.index, dtype=bool)
        return self.filter.mask(self.keys)


def build_dimension(name: str, records: pd.DataFrame, accessor: Callable[[pd.DataFrame], pd.Series]) -> Dimension:
    return Dimension(name=name, keys=accessor(records))
