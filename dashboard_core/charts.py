from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import altair as alt
import pandas as pd

from dashboard_core.filters import STATUS_CLASSES
from dashboard_core.groups import BINWIDTH, Group

alt.data_transformers.disable_max_rows()

PRIMARY_COLOR = "#2fa4e7"
STATUS_COLORS = ["#28ae4f", "#ffc107", "#e15400", "#cc1410"]

TIME_BRUSH = "time_brush"
RESPONSE_TIME_BRUSH = "response_time_brush"
STATUS_CLICK = "status_click"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def series_frame(group: Group) -> pd.DataFrame:
    """Group entries as a key/count frame, without the missing and blank keys."""
    rows = [{"key": k, "count": c} for k, c in group if k is not None and k != ""]
    return pd.DataFrame(rows, columns=["key", "count"])


def _iso_domain(domain: Optional[Tuple[Any, Any]]) -> Optional[list]:
    if domain is None:
        return None
    return [pd.Timestamp(domain[0]).isoformat(), pd.Timestamp(domain[1]).isoformat()]


def requests_over_time_chart(group: Group, domain: Optional[Tuple[Any, Any]] = None) -> alt.Chart:
    """Detail line chart; its x domain follows the overview brush."""
    iso = _iso_domain(domain)
    x_scale = alt.Scale(domain=iso) if iso else alt.Undefined
    return (
        alt.Chart(series_frame(group))
        .mark_area(line={"color": PRIMARY_COLOR}, color=PRIMARY_COLOR, opacity=0.3, clip=True)
        .encode(
            x=alt.X("key:T", title=None, scale=x_scale),
            y=alt.Y("count:Q", title="Requests", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("key:T", title="Time"), alt.Tooltip("count:Q", title="Requests", format=",")],
        )
        .properties(height=350)
    )


def overview_chart(group: Group) -> alt.Chart:
    brush = alt.selection_interval(name=TIME_BRUSH, encodings=["x"])
    return (
        alt.Chart(series_frame(group))
        .mark_bar(color=PRIMARY_COLOR)
        .encode(
            x=alt.X("key:T", title=None),
            y=alt.Y("count:Q", title=None, axis=alt.Axis(labels=False, ticks=False, grid=False)),
        )
        .add_params(brush)
        .properties(height=100)
    )


def status_code_chart(group: Group) -> alt.Chart:
    click = alt.selection_point(name=STATUS_CLICK, fields=["key"])
    return (
        alt.Chart(series_frame(group))
        .mark_bar()
        .encode(
            y=alt.Y("key:N", title=None, sort=list(STATUS_CLASSES)),
            x=alt.X("count:Q", title=None, axis=alt.Axis(tickCount=5)),
            color=alt.Color(
                "key:N",
                scale=alt.Scale(domain=list(STATUS_CLASSES), range=STATUS_COLORS),
                legend=None,
            ),
            opacity=alt.condition(click, alt.value(1.0), alt.value(0.4)),
            tooltip=[alt.Tooltip("key:N", title="Status"), alt.Tooltip("count:Q", title="Requests", format=",")],
        )
        .add_params(click)
        .properties(height=215)
    )


def response_time_chart(
    group: Group, domain: Optional[Tuple[Any, Any]] = None, binwidth: int = BINWIDTH
) -> alt.Chart:
    brush = alt.selection_interval(name=RESPONSE_TIME_BRUSH, encodings=["x"])
    df = series_frame(group)
    df["bin_end"] = df["key"] + binwidth if not df.empty else pd.Series(dtype=float)
    x_scale = alt.Scale(domain=list(domain), clamp=True) if domain else alt.Undefined
    return (
        alt.Chart(df)
        .mark_bar(color=PRIMARY_COLOR)
        .encode(
            x=alt.X("key:Q", title="Response time (ms)", scale=x_scale, axis=alt.Axis(tickCount=10)),
            x2="bin_end:Q",
            y=alt.Y("count:Q", title="Requests", axis=alt.Axis(gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("key:Q", title="From (ms)"), alt.Tooltip("count:Q", title="Requests", format=",")],
        )
        .add_params(brush)
        .properties(height=215)
    )


def _selected(chart_state: Optional[Mapping[str, Any]], param: str) -> Any:
    if not chart_state:
        return None
    return (chart_state.get("selection") or {}).get(param)


def brush_range(chart_state: Optional[Mapping[str, Any]], param: str) -> Optional[Tuple[Any, Any]]:
    """(low, high) of an x-interval brush in a chart's selection state, or None.

    Temporal brushes report epoch milliseconds; ``filter_range`` parses them.
    """
    selected = _selected(chart_state, param)
    if not isinstance(selected, Mapping):
        return None
    bounds = selected.get("key")
    if isinstance(bounds, (list, tuple)) and len(bounds) == 2:
        return bounds[0], bounds[1]
    return None


def clicked_keys(chart_state: Optional[Mapping[str, Any]], param: str) -> List[str]:
    selected = _selected(chart_state, param)
    if not isinstance(selected, list):
        return []
    return [str(point["key"]) for point in selected if isinstance(point, Mapping) and point.get("key")]
