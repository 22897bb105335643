"""Core (UI-agnostic) request-log dashboard logic.

This package contains:
- record loading (search backend documents -> pandas)
- filter normalization and the prefix pre-filter
- the cross-filter engine (dimensions, groups, visible sets)
- summary statistics and table projection
- chart helpers (Altair -> Vega-Lite spec dict)
"""
