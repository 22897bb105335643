from __future__ import annotations


class DashboardError(Exception):
    """Base class for errors surfaced to the dashboard user."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(DashboardError):
    """No reachable search backend is configured. Not retried."""

    status_code = 500


class AuthorizationError(DashboardError):
    """The caller is not authenticated. Raised before any query is issued."""

    status_code = 401


class BackendQueryError(DashboardError):
    """The search query failed or returned malformed data. The user may re-fetch."""

    status_code = 502
