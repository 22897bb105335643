from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from dashboard_core.data import round_half_up


@dataclass(frozen=True)
class Statistics:
    requests_count: int = 0
    average_response_time: int = 0
    response_rate: int = 0
    unique_users_count: int = 0


def requests_count(records: pd.DataFrame) -> int:
    return int(len(records))


def average_response_time(records: pd.DataFrame) -> int:
    """Rounded mean of the readable response times; 0 when there are none."""
    if records.empty:
        return 0
    times = records["response_time"].dropna()
    if times.empty:
        return 0
    return int(round_half_up(float(times.mean())) or 0)


def response_rate(records: pd.DataFrame) -> int:
    """Percentage of requests answered with status 200, rounded."""
    total = len(records)
    if total == 0:
        return 0
    success = int((records["status_code"] == 200).fillna(False).sum())
    if success == 0:
        return 0
    return int(round_half_up(success / total * 100) or 0)


def unique_users_count(records: pd.DataFrame) -> int:
    if records.empty:
        return 0
    return int(records["user_id"].dropna().nunique())


def compute_statistics(records: pd.DataFrame) -> Statistics:
    return Statistics(
        requests_count=requests_count(records),
        average_response_time=average_response_time(records),
        response_rate=response_rate(records),
        unique_users_count=unique_users_count(records),
    )
