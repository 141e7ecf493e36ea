from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import pandas as pd

from core.config import AppConfig
from domain.entities import ForecastResult
from infrastructure.ml.forecaster import ForecastEngine
from infrastructure.ml.preprocessing import to_observed_series

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunForecastInput:
    df: pd.DataFrame
    horizon: int
    target_col: Optional[str] = None
    seasonal_period: Optional[int] = None


@dataclass(frozen=True)
class RunForecastOutput:
    meta: Dict[str, Any]
    result: ForecastResult


def run_forecast_uc(cfg: AppConfig, inp: RunForecastInput) -> RunForecastOutput:
    target = inp.target_col or cfg.confirmed_col
    s = int(inp.seasonal_period or cfg.engine.seasonal_period)

    series = to_observed_series(inp.df, value_col=target, date_col=cfg.date_col, seasonal_period=s)
    engine = ForecastEngine(cfg.engine)
    result = engine.forecast(series, horizon=int(inp.horizon), seasonal_period=s)

    if result.degraded:
        logger.warning("Forecast for `%s` is degraded (naive model)", target)

    meta = {
        "series_name": target,
        "rows_count": len(series),
        "date_range_start": series.dates[0].isoformat() if series.dates else None,
        "date_range_end": series.dates[-1].isoformat() if series.dates else None,
        "horizon": int(inp.horizon),
        "seasonal_period": s,
        "model": str(result.model.candidate) if result.model is not None else "naive",
        "order": result.order,
        "seasonal_order": result.seasonal_order,
        "aicc": result.aicc,
        "degraded": result.degraded,
        "candidates_evaluated": result.candidates_evaluated,
    }

    return RunForecastOutput(meta=meta, result=result)
