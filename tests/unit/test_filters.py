"""Tests for dashboard filter normalization."""

import pandas as pd

from dashboard_core.filters import DashboardFilters, normalize_filters


class TestNormalizeFilters:
    def test_empty_payload_gives_defaults(self) -> None:
        assert normalize_filters({}) == DashboardFilters()

    def test_unknown_granularity_falls_back_to_hour(self) -> None:
        assert normalize_filters({"granularity": "decade"}).granularity == "hour"
        assert normalize_filters({"granularity": "WEEK"}).granularity == "week"

    def test_status_classes_are_normalized(self) -> None:
        f = normalize_filters({"status_classes": ["5xx", "2XX", "9XX", "2XX", None]})

        assert f.status_classes == ["2XX", "5XX"]

    def test_blank_prefixes_dropped(self) -> None:
        f = normalize_filters({"prefixes": ["/api/", "", "  ", None, "/api/"]})

        assert f.prefixes == ["/api/"]

    def test_time_range_parsed_to_naive_utc(self) -> None:
        f = normalize_filters({"time_range": {"low": "2024-03-04T10:00:00Z", "high": "2024-03-04T12:00:00+00:00"}})

        assert f.time_range == (pd.Timestamp("2024-03-04 10:00"), pd.Timestamp("2024-03-04 12:00"))

    def test_malformed_ranges_are_dropped(self) -> None:
        f = normalize_filters(
            {
                "time_range": {"low": "yesterday-ish", "high": "2024-03-04"},
                "response_time_range": {"low": "fast", "high": 100},
            }
        )

        assert f.time_range is None
        assert f.response_time_range is None

    def test_response_time_range_from_pair(self) -> None:
        assert normalize_filters({"response_time_range": [0, 50]}).response_time_range == (0.0, 50.0)
