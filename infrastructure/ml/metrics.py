from __future__ import annotations

from math import sqrt
from typing import Dict, Sequence

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error

from domain.entities import ForecastResult


def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)
    mask = y_true != 0
    if not np.any(mask):
        return 0.0
    return float(np.mean(np.abs((y_true[mask] - y_pred[mask]) / y_true[mask])) * 100.0)


def interval_coverage(y_true: Sequence[float], result: ForecastResult) -> float:
    """Share of actual values that fall inside the prediction interval."""
    n = min(len(y_true), len(result.steps))
    if n == 0:
        return float("nan")
    hits = sum(
        1 for actual, st in zip(list(y_true)[:n], result.steps[:n]) if st.lower <= actual <= st.upper
    )
    return hits / n


def calc_metrics(y_true: Sequence[float], result: ForecastResult) -> Dict[str, float]:
    y_t = np.asarray(y_true, dtype=float)
    y_p = np.asarray(result.points[: len(y_t)], dtype=float)
    if len(y_p) == 0:
        return {"mae": np.nan, "rmse": np.nan, "mape": np.nan, "coverage": np.nan}
    y_t = y_t[: len(y_p)]
    return {
        "mae": float(mean_absolute_error(y_t, y_p)),
        "rmse": float(sqrt(mean_squared_error(y_t, y_p))),
        "mape": mape(y_t, y_p),
        "coverage": interval_coverage(y_t, result),
    }
