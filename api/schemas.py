from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TimeRangeModel(BaseModel):
    low: datetime
    high: datetime


class NumberRangeModel(BaseModel):
    low: float
    high: float


class DashboardFiltersModel(BaseModel):
    prefixes: List[str] = Field(default_factory=list)
    granularity: Literal["hour", "day", "week", "month"] = "hour"
    time_range: Optional[TimeRangeModel] = None
    status_classes: List[str] = Field(default_factory=list)
    response_time_range: Optional[NumberRangeModel] = None


class TimeFrameModel(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class FetchRequestModel(BaseModel):
    time_frame: TimeFrameModel = Field(default_factory=TimeFrameModel)
    size: Optional[int] = Field(default=None, gt=0)
    filters: DashboardFiltersModel = Field(default_factory=DashboardFiltersModel)

