"""Shared test fixtures for all test modules."""

from typing import Any, Dict, List

import pandas as pd
import pytest

from dashboard_core.data import records_from_documents
from dashboard_core.engine import CrossfilterEngine
from tests.helpers import SCENARIO_ROWS, make_doc


@pytest.fixture
def scenario_documents() -> List[Dict[str, Any]]:
    """Five requests: statuses 200,200,404,500,200 and response times 10,60,30,200,40."""
    return [make_doc(**row) for row in SCENARIO_ROWS]


@pytest.fixture
def scenario_records(scenario_documents: List[Dict[str, Any]]) -> pd.DataFrame:
    return records_from_documents(scenario_documents)


@pytest.fixture
def engine(scenario_records: pd.DataFrame) -> CrossfilterEngine:
    return CrossfilterEngine(scenario_records)
