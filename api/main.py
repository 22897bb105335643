from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI, Header
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import DashboardFiltersModel, FetchRequestModel
from dashboard_core.backend import fetch_documents
from dashboard_core.config import DashboardSettings, configure_logging, load_settings
from dashboard_core.data import prefix_options, records_from_documents
from dashboard_core.engine import CrossfilterEngine
from dashboard_core.errors import DashboardError
from dashboard_core.filters import GRANULARITIES, DashboardFilters, normalize_filters
from dashboard_core.metrics_dashboard import compute_dashboard
from dashboard_core.metrics_table import table_frame


app = FastAPI(title="Request Log Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

DocumentSource = Callable[[FetchRequestModel, Optional[str]], List[Dict[str, Any]]]


@lru_cache(maxsize=1)
def get_settings() -> DashboardSettings:
    settings = load_settings()
    configure_logging(settings.log_level)
    return settings


def get_document_source(settings: DashboardSettings = Depends(get_settings)) -> DocumentSource:
    def fetch(request: FetchRequestModel, user: Optional[str]) -> List[Dict[str, Any]]:
        return fetch_documents(
            settings,
            user=user,
            start=request.time_frame.start,
            end=request.time_frame.end,
            size=request.size,
        )

    return fetch


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(raw)


def _build_engine(request: FetchRequestModel, source: DocumentSource, user: Optional[str]) -> tuple:
    f = _filters_from_model(request.filters)
    documents = source(request, user)
    engine = CrossfilterEngine(records_from_documents(documents), granularity=f.granularity)
    engine.apply_filters(f)
    return f, engine


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                type(pd.NaT): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    if isinstance(exc, DashboardError):
        logger.warning("%s failed: %s", where, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "type": type(exc).__name__})
    logger.exception("%s failed", where)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/granularities")
def meta_granularities(settings: DashboardSettings = Depends(get_settings)):
    return _json({"granularities": list(GRANULARITIES), "default": settings.default_granularity})


@app.post("/meta/prefixes")
def meta_prefixes(
    request: FetchRequestModel,
    x_user: Optional[str] = Header(default=None),
    settings: DashboardSettings = Depends(get_settings),
    source: DocumentSource = Depends(get_document_source),
):
    try:
        if settings.api_frontend_prefixes:
            return _json({"prefixes": prefix_options(records_from_documents([]), settings.api_frontend_prefixes)})
        records = records_from_documents(source(request, x_user))
        return _json({"prefixes": prefix_options(records)})
    except Exception as exc:
        return _error(exc, "meta_prefixes")


@app.post("/dashboard")
def dashboard(
    request: FetchRequestModel,
    x_user: Optional[str] = Header(default=None),
    source: DocumentSource = Depends(get_document_source),
):
    try:
        f, engine = _build_engine(request, source, x_user)
        return _json(compute_dashboard(f, engine.snapshot()))
    except Exception as exc:
        return _error(exc, "dashboard")


@app.post("/export/table")
def export_table(
    request: FetchRequestModel,
    x_user: Optional[str] = Header(default=None),
    source: DocumentSource = Depends(get_document_source),
):
    try:
        _, engine = _build_engine(request, source, x_user)
    except Exception as exc:
        return _error(exc, "export_table")
    csv_bytes = table_frame(engine.top_all()).to_csv(index=False).encode("utf-8")
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=requests.csv"},
    )
