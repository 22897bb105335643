import datetime as dt
from contextlib import contextmanager
from typing import List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from dashboard_core.backend import fetch_documents
from dashboard_core.charts import (
    RESPONSE_TIME_BRUSH,
    STATUS_CLICK,
    TIME_BRUSH,
    brush_range,
    clicked_keys,
    overview_chart,
    requests_over_time_chart,
    response_time_chart,
    status_code_chart,
)
from dashboard_core.config import configure_logging, load_settings
from dashboard_core.data import prefix_options, records_from_documents
from dashboard_core.dimensions import RESPONSE_TIME, STATUS, TIME
from dashboard_core.engine import CrossfilterEngine
from dashboard_core.errors import DashboardError
from dashboard_core.filters import GRANULARITIES, normalize_filters
from dashboard_core.metrics_table import table_frame

alt.data_transformers.disable_max_rows()

OVERVIEW_KEY = "overview_chart"
STATUS_KEY = "status_chart"
RESPONSE_TIME_KEY = "response_time_chart"


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(granularity: str, prefixes: List[str], status_classes: List[str], time_filtered: bool, rt_filtered: bool) -> str:
    chips = [
        f"Tick: {granularity}",
        f"Prefixes: {', '.join(prefixes)}" if prefixes else "Prefixes: All",
        f"Status: {', '.join(status_classes)}" if status_classes else "Status: All",
        "Time: selected range" if time_filtered else "Time: All",
        "Response time: selected range" if rt_filtered else "Response time: All",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def load_engine(user: str, start: dt.date, end: dt.date) -> Optional[CrossfilterEngine]:
    """Fetch one batch and build this session's engine. Errors are shown, not raised."""
    start_ts = pd.Timestamp(start)
    end_ts = pd.Timestamp(end) + pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)
    try:
        with st.spinner("Fetching request logs..."):
            documents = fetch_documents(settings, user=user, start=start_ts, end=end_ts)
    except DashboardError as exc:
        st.error(exc.message)
        return None
    return CrossfilterEngine(records_from_documents(documents), granularity=settings.default_granularity)


# ---------- UI setup ----------
settings = load_settings()
configure_logging(settings.log_level)

st.set_page_config(page_title="Request Analytics Dashboard", layout="wide")
inject_base_styles()
st.title("Request Analytics Dashboard")
st.caption("Linked charts: every chart is narrowed by the selections made on the other charts.")

today = dt.date.today()
with st.sidebar:
    st.markdown("### Data")
    user = st.text_input("Signed in as", value=st.session_state.get("user", ""))
    time_frame = st.date_input(
        "Time frame",
        value=(today - dt.timedelta(days=7), today),
        max_value=today + dt.timedelta(days=1),
        format="DD/MM/YYYY",
    )
    fetch_clicked = st.button("Fetch data", type="primary")

if fetch_clicked:
    st.session_state["user"] = user
    if isinstance(time_frame, (tuple, list)) and len(time_frame) == 2:
        start_date, end_date = time_frame
    else:
        start_date = end_date = time_frame[0] if isinstance(time_frame, (tuple, list)) else time_frame
    engine = load_engine(user, start_date, end_date)
    if engine is None:
        st.stop()
    st.session_state["engine"] = engine

engine: Optional[CrossfilterEngine] = st.session_state.get("engine")
if engine is None:
    st.info("Pick a time frame and fetch data to start.")
    st.stop()

raw_records = engine.source_records
if raw_records.empty:
    st.warning("No data found.")
    st.stop()

# ----- Sidebar: cross-filters -----
with st.sidebar:
    st.markdown("---")
    st.markdown("### Filters")
    granularity = st.radio(
        "Tick",
        list(GRANULARITIES),
        index=list(GRANULARITIES).index(engine.granularity),
        horizontal=True,
    )
    prefixes = st.multiselect(
        "API frontend prefix",
        options=prefix_options(raw_records, settings.api_frontend_prefixes),
        default=[p for p in engine.prefixes],
    )
    st.caption("Drag across the overview or the response time chart to select a range, click status bars to pick classes. Double-click a chart to clear its selection.")

# Chart selections from the previous run drive the cross-filters of this run.
time_range = brush_range(st.session_state.get(OVERVIEW_KEY), TIME_BRUSH)
status_classes = clicked_keys(st.session_state.get(STATUS_KEY), STATUS_CLICK)
response_time_range = brush_range(st.session_state.get(RESPONSE_TIME_KEY), RESPONSE_TIME_BRUSH)

filters = normalize_filters(
    {
        "prefixes": prefixes,
        "granularity": granularity,
        "time_range": time_range,
        "status_classes": status_classes,
        "response_time_range": response_time_range,
    }
)
engine.apply_filters(filters)
snapshot = engine.snapshot()

st.markdown(
    "<div class='chip-row'>"
    + format_filter_summary(
        granularity,
        prefixes,
        filters.status_classes,
        filters.time_range is not None,
        filters.response_time_range is not None,
    )
    + "</div>",
    unsafe_allow_html=True,
)

stats = snapshot.statistics
cols = st.columns(4)
cols[0].metric("Requests", f"{stats.requests_count:,}")
cols[1].metric("Avg response time", f"{stats.average_response_time} ms")
cols[2].metric("Success rate", f"{stats.response_rate}%", help="Share of requests answered with status 200.")
cols[3].metric("Unique users", f"{stats.unique_users_count:,}")
st.caption(f"{snapshot.visible_count:,} selected out of {snapshot.total_count:,} records")

with card("Requests over time"):
    st.altair_chart(requests_over_time_chart(snapshot.groups[TIME], snapshot.detail_time_domain), use_container_width=True)
    st.altair_chart(
        overview_chart(snapshot.groups[TIME]),
        use_container_width=True,
        on_select="rerun",
        key=OVERVIEW_KEY,
    )

left, right = st.columns(2)
with left:
    with card("Status codes"):
        st.altair_chart(
            status_code_chart(snapshot.groups[STATUS]),
            use_container_width=True,
            on_select="rerun",
            key=STATUS_KEY,
        )
with right:
    with card("Response time distribution"):
        st.altair_chart(
            response_time_chart(snapshot.groups[RESPONSE_TIME], snapshot.response_time_domain),
            use_container_width=True,
            on_select="rerun",
            key=RESPONSE_TIME_KEY,
        )

with card("Requests"):
    table = table_frame(engine.top_all())
    st.dataframe(table, use_container_width=True, hide_index=True)
    st.download_button(
        "Export CSV",
        data=table.to_csv(index=False).encode("utf-8"),
        file_name="requests.csv",
        mime="text/csv",
    )
