from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from dashboard_core.charts import (
    overview_chart,
    requests_over_time_chart,
    response_time_chart,
    status_code_chart,
    to_vega_spec,
)
from dashboard_core.dimensions import RESPONSE_TIME, STATUS, TIME
from dashboard_core.engine import DashboardSnapshot
from dashboard_core.filters import DashboardFilters, Filter, RangeFilter


def _plain(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return value


def _domain(domain: Optional[Tuple[Any, Any]]) -> Optional[List[Any]]:
    if domain is None:
        return None
    return [_plain(domain[0]), _plain(domain[1])]


def _filter_payload(flt: Optional[Filter]) -> Optional[Dict[str, Any]]:
    if flt is None:
        return None
    if isinstance(flt, RangeFilter):
        return {"kind": "range", "low": _plain(flt.low), "high": _plain(flt.high)}
    return {"kind": "set", "keys": sorted(_plain(k) for k in flt.keys)}


def compute_dashboard(filters: DashboardFilters, snapshot: DashboardSnapshot) -> Dict[str, Any]:
    groups = snapshot.groups
    charts: Dict[str, Any] = {
        "requests_over_time": to_vega_spec(requests_over_time_chart(groups.get(TIME, []), snapshot.detail_time_domain)),
        "overview": to_vega_spec(overview_chart(groups.get(TIME, []))),
        "status_code_counts": to_vega_spec(status_code_chart(groups.get(STATUS, []))),
        "response_time_distribution": to_vega_spec(
            response_time_chart(groups.get(RESPONSE_TIME, []), snapshot.response_time_domain)
        ),
    }

    return {
        "filters": asdict(filters),
        "granularity": snapshot.granularity,
        "prefixes": list(snapshot.prefixes),
        "counts": {"total": snapshot.total_count, "visible": snapshot.visible_count},
        "statistics": asdict(snapshot.statistics),
        "active_filters": {name: _filter_payload(flt) for name, flt in snapshot.filters.items()},
        "series": {
            name: [{"key": _plain(k), "count": c} for k, c in group] for name, group in groups.items()
        },
        "domains": {
            "time": _domain(snapshot.time_domain),
            "detail_time": _domain(snapshot.detail_time_domain),
            "response_time": _domain(snapshot.response_time_domain),
        },
        "table": snapshot.table,
        "charts": charts,
    }
