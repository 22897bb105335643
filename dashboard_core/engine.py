"""Cross-filter engine.

One engine owns one fetched batch and the three dimensions built over it.
Every chart's group is computed over the records passing all *other*
charts' filters; the table and the statistics use the records passing
every filter. Each mutation republishes a complete snapshot through
``engine.state``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from dashboard_core.data import filter_by_prefixes, parse_timestamp, records_from_documents
from dashboard_core.dimensions import (
    DIMENSION_NAMES,
    RESPONSE_TIME,
    STATUS,
    TIME,
    Dimension,
    build_dimension,
    response_time_keys,
    status_class_keys,
    time_bucket_keys,
)
from dashboard_core.filters import DashboardFilters, Filter, RangeFilter, SetFilter, normalize_granularity
from dashboard_core.groups import BINWIDTH, Group, count_group, histogram_group
from dashboard_core.metrics_summary import Statistics, compute_statistics
from dashboard_core.metrics_table import table_rows
from dashboard_core.state import Observable


logger = logging.getLogger(__name__)

RESPONSE_TIME_AXIS_MAX = 1000

Domain = Optional[Tuple[Any, Any]]


@dataclass(frozen=True)
class DashboardSnapshot:
    granularity: str = "hour"
    prefixes: Tuple[str, ...] = ()
    filters: Dict[str, Optional[Filter]] = field(default_factory=dict)
    groups: Dict[str, Group] = field(default_factory=dict)
    time_domain: Domain = None
    detail_time_domain: Domain = None
    response_time_domain: Domain = None
    table: List[Dict[str, Any]] = field(default_factory=list)
    statistics: Statistics = field(default_factory=Statistics)
    total_count: int = 0
    visible_count: int = 0


class CrossfilterEngine:
    def __init__(
        self,
        records: Optional[pd.DataFrame] = None,
        *,
        granularity: str = "hour",
        prefixes: Optional[Sequence[str]] = None,
        binwidth: int = BINWIDTH,
    ) -> None:
        self.binwidth = binwidth
        self.granularity = normalize_granularity(granularity)
        self.prefixes: Tuple[str, ...] = tuple(prefixes or ())
        self._raw = records if records is not None else records_from_documents([])
        self.records = self._raw
        self.dimensions: Dict[str, Dimension] = {}
        self._batch_depth = 0
        self._notifying = False
        self._pending = False
        self._build()
        self.state: Observable[DashboardSnapshot] = Observable(self._compute_snapshot())

    @classmethod
    def from_documents(cls, documents: Iterable[object], **kwargs: Any) -> "CrossfilterEngine":
        return cls(records_from_documents(list(documents)), **kwargs)

    # ---------- dataset lifecycle ----------

    @property
    def source_records(self) -> pd.DataFrame:
        """The whole batch, before the prefix pre-filter."""
        return self._raw

    def _build(self) -> None:
        self.records = filter_by_prefixes(self._raw, self.prefixes)
        self.dimensions = {
            TIME: build_dimension(TIME, self.records, lambda r: time_bucket_keys(r, self.granularity)),
            STATUS: build_dimension(STATUS, self.records, status_class_keys),
            RESPONSE_TIME: build_dimension(RESPONSE_TIME, self.records, response_time_keys),
        }
        logger.debug(
            "Built dimensions over %d of %d records (granularity=%s, prefixes=%s)",
            len(self.records),
            len(self._raw),
            self.granularity,
            list(self.prefixes),
        )

    def load(self, records: pd.DataFrame) -> None:
        """Replace the batch. All filters are cleared."""
        self._raw = records
        self._build()
        self._refresh()

    def set_prefixes(self, prefixes: Optional[Sequence[str]]) -> None:
        """Change the prefix allow-list. Rebuilds and clears all filters."""
        self.prefixes = tuple(prefixes or ())
        self._build()
        self._refresh()

    def set_granularity(self, granularity: str) -> None:
        """Rekey the time dimension. Only the time filter is cleared."""
        self.granularity = normalize_granularity(granularity)
        self.dimensions[TIME] = build_dimension(
            TIME, self.records, lambda r: time_bucket_keys(r, self.granularity)
        )
        self._refresh()

    # ---------- filters ----------

    def dimension(self, name: str) -> Dimension:
        try:
            return self.dimensions[name]
        except KeyError:
            raise KeyError(f"Unknown dimension {name!r}; expected one of {DIMENSION_NAMES}") from None

    def set_filter(self, name: str, flt: Optional[Filter]) -> None:
        """Replace ``name``'s filter; ``None`` clears it."""
        dim = self.dimension(name)
        if name == TIME and isinstance(flt, RangeFilter):
            # Time keys are naive UTC.
            flt = RangeFilter(parse_timestamp(flt.low), parse_timestamp(flt.high))
        if dim.filter == flt:
            return
        dim.set_filter(flt)
        self._refresh()

    def filter_range(self, name: str, low: Any, high: Any) -> None:
        self.set_filter(name, RangeFilter(low, high))

    def filter_keys(self, name: str, keys: Iterable[Any]) -> None:
        self.set_filter(name, SetFilter(frozenset(keys)))

    def clear_filters(self) -> None:
        with self.batch():
            for name in self.dimensions:
                self.set_filter(name, None)

    def apply_filters(self, filters: DashboardFilters) -> None:
        """Bring the engine to the state described by ``filters`` in one update."""
        with self.batch():
            if tuple(filters.prefixes) != self.prefixes:
                self.set_prefixes(filters.prefixes)
            if filters.granularity != self.granularity:
                self.set_granularity(filters.granularity)
            if filters.time_range is not None:
                self.filter_range(TIME, *filters.time_range)
            else:
                self.set_filter(TIME, None)
            if filters.status_classes:
                self.filter_keys(STATUS, filters.status_classes)
            else:
                self.set_filter(STATUS, None)
            if filters.response_time_range is not None:
                self.filter_range(RESPONSE_TIME, *filters.response_time_range)
            else:
                self.set_filter(RESPONSE_TIME, None)

    # ---------- visible sets ----------

    def _mask(self, exclude: Optional[str] = None) -> pd.Series:
        mask = pd.Series(True, index=self.records.index, dtype=bool)
        for name, dim in self.dimensions.items():
            if name != exclude and dim.filter is not None:
                mask &= dim.mask()
        return mask

    def global_visible(self) -> pd.DataFrame:
        return self.records[self._mask()]

    def top_all(self) -> pd.DataFrame:
        """Records passing every filter, in batch order."""
        return self.global_visible()

    def foreign_visible(self, name: str) -> pd.DataFrame:
        """Records passing every filter except ``name``'s own."""
        self.dimension(name)
        return self.records[self._mask(exclude=name)]

    def group(self, name: str) -> Group:
        dim = self.dimension(name)
        keys = dim.keys[self._mask(exclude=name)]
        if name == RESPONSE_TIME:
            return histogram_group(keys, self.binwidth)
        return count_group(keys)

    # ---------- domains ----------

    def time_domain(self) -> Domain:
        keys = self.dimensions[TIME].keys.dropna()
        if keys.empty:
            return None
        return keys.min(), keys.max()

    def detail_time_domain(self) -> Domain:
        flt = self.dimensions[TIME].filter
        if isinstance(flt, RangeFilter):
            return flt.low, flt.high
        return self.time_domain()

    def response_time_domain(self) -> Domain:
        times = self.records["response_time"].dropna()
        if times.empty:
            return None
        low = float(times.min())
        return low, max(RESPONSE_TIME_AXIS_MAX, low)

    # ---------- recompute ----------

    def snapshot(self) -> DashboardSnapshot:
        return self.state.get()

    def _compute_snapshot(self) -> DashboardSnapshot:
        visible = self.global_visible()
        return DashboardSnapshot(
            granularity=self.granularity,
            prefixes=self.prefixes,
            filters={name: dim.filter for name, dim in self.dimensions.items()},
            groups={name: self.group(name) for name in self.dimensions},
            time_domain=self.time_domain(),
            detail_time_domain=self.detail_time_domain(),
            response_time_domain=self.response_time_domain(),
            table=table_rows(visible),
            statistics=compute_statistics(visible),
            total_count=int(len(self.records)),
            visible_count=int(len(visible)),
        )

    @contextmanager
    def batch(self) -> Iterator["CrossfilterEngine"]:
        """Collapse every mutation inside the block into one recompute."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._pending:
                self._refresh()

    def _refresh(self) -> None:
        if self._batch_depth or self._notifying:
            self._pending = True
            return
        while True:
            self._pending = False
            snapshot = self._compute_snapshot()
            logger.debug("Recomputed dashboard: %d of %d records visible", snapshot.visible_count, snapshot.total_count)
            self._notifying = True
            try:
                self.state.set(snapshot)
            finally:
                self._notifying = False
            if not self._pending:
                break
