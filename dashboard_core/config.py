"""Configuration for the request-log dashboard.

Settings come from a YAML file validated with pydantic. Unknown keys fail
fast so typos in the file surface at startup.

Usage:
    from dashboard_core.config import load_settings
    settings = load_settings()
    settings.backend.host
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


DATA_DIR = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = DATA_DIR / "config" / "dashboard.yaml"
CONFIG_PATH_ENV = "DASHBOARD_CONFIG"
HOST_ENV = "DASHBOARD_ELASTICSEARCH_HOST"


class StrictModel(BaseModel):
    """Base model that rejects unknown fields."""

    model_config = ConfigDict(extra="forbid")


class BackendSettings(StrictModel):
    """Connection to the search backend holding the request logs."""

    host: Optional[str] = Field(default=None, description="Base URL, e.g. http://localhost:9200")
    index: str = Field(default="api-umbrella-logs-*", min_length=1)
    timeout: float = Field(default=30.0, gt=0)
    size: int = Field(default=10000, gt=0, description="Maximum documents per fetch")
    verify_tls: bool = True

    @field_validator("host")
    @classmethod
    def _blank_host_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None


class AuthSettings(StrictModel):
    """Who may request data. An empty allow-list admits any named user."""

    allowed_users: List[str] = Field(default_factory=list)


class DashboardSettings(StrictModel):
    backend: BackendSettings = Field(default_factory=BackendSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    default_granularity: Literal["hour", "day", "week", "month"] = "hour"
    api_frontend_prefixes: List[str] = Field(default_factory=list)
    log_level: str = "INFO"


def load_settings(config_path: Union[str, Path, None] = None) -> DashboardSettings:
    """Load settings from YAML.

    The path argument wins, then $DASHBOARD_CONFIG, then config/dashboard.yaml.
    A missing file yields the defaults. $DASHBOARD_ELASTICSEARCH_HOST overrides
    the backend host.

    Raises:
        pydantic.ValidationError: If the file content is invalid.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    raw: dict = {}
    if path.exists():
        with open(path) as f:
            loaded = yaml.safe_load(f)
        if isinstance(loaded, dict):
            raw = loaded

    settings = DashboardSettings.model_validate(raw)
    host = os.environ.get(HOST_ENV)
    if host:
        backend = settings.backend.model_copy(update={"host": host.strip().rstrip("/") or None})
        settings = settings.model_copy(update={"backend": backend})
    return settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
