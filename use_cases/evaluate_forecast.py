from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from core.config import AppConfig
from core.errors import InsufficientDataError
from domain.entities import ForecastResult, ObservedSeries
from infrastructure.ml.forecaster import ForecastEngine
from infrastructure.ml.metrics import calc_metrics


@dataclass(frozen=True)
class EvaluateOutput:
    metrics: Dict[str, float]
    result: ForecastResult
    actual: tuple[float, ...]


def evaluate_forecast_uc(
    cfg: AppConfig,
    series: ObservedSeries,
    holdout: Optional[int] = None,
) -> EvaluateOutput:
    """Fit on all but the last `holdout` points and score against them."""
    holdout = cfg.holdout if holdout is None else int(holdout)
    engine = ForecastEngine(cfg.engine)
    s = series.seasonal_period

    train_len = len(series) - holdout
    required = engine.min_length(s)
    if holdout < 1 or train_len < required:
        raise InsufficientDataError(max(train_len, 0), required)

    train = ObservedSeries(
        values=series.values[:train_len],
        dates=series.dates[:train_len] if series.dates else None,
        seasonal_period=s,
        name=series.name,
    )
    actual = series.values[train_len:]

    result = engine.forecast(train, horizon=holdout, seasonal_period=s)
    return EvaluateOutput(metrics=calc_metrics(actual, result), result=result, actual=actual)
