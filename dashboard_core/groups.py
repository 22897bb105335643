from __future__ import annotations

from typing import Any, List, Tuple

import numpy as np
import pandas as pd


BINWIDTH = 50

Group = List[Tuple[Any, int]]


def _plain_key(key: Any) -> Any:
    if key is None or (not isinstance(key, str) and pd.isna(key)):
        return None
    if isinstance(key, np.integer):
        return int(key)
    if isinstance(key, (float, np.floating)) and float(key).is_integer():
        return int(key)
    return key


def count_group(keys: pd.Series) -> Group:
    """(key, count) per distinct key, ascending; a missing key sorts last."""
    if keys.empty:
        return []
    counts = keys.value_counts(dropna=False, sort=False).sort_index(na_position="last")
    return [(_plain_key(k), int(c)) for k, c in counts.items()]


def histogram_bins(values: pd.Series, binwidth: int = BINWIDTH) -> pd.Series:
    return binwidth * np.floor(values.astype(float) / binwidth)


def histogram_group(values: pd.Series, binwidth: int = BINWIDTH) -> Group:
    """Counts per bin lower bound ``binwidth * floor(v / binwidth)``. Empty bins are omitted."""
    return count_group(histogram_bins(values, binwidth))


def group_total(group: Group) -> int:
    return sum(count for _, count in group)
