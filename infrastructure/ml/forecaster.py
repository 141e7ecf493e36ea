from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

import numpy as np
from scipy.stats import norm

from core.config import EngineConfig
from core.errors import InsufficientDataError, InvalidSeriesError
from domain.entities import FittedModel, ForecastResult, ForecastStep, ObservedSeries
from infrastructure.ml.arima import fit_candidate, forecast_differenced, psi_weights
from infrastructure.ml.differencing import apply_differencing, choose_differencing, integrate
from infrastructure.ml.order_search import FitFn, OrderSearch

logger = logging.getLogger(__name__)

SeriesLike = Union[ObservedSeries, Sequence[float], np.ndarray]


def _as_array(series: SeriesLike) -> np.ndarray:
    if isinstance(series, ObservedSeries):
        return series.as_array()
    try:
        y = np.asarray(series, dtype=float)
    except (TypeError, ValueError) as exc:
        raise InvalidSeriesError(f"Series is not numeric: {exc}") from exc
    if y.ndim != 1:
        raise InvalidSeriesError(f"Series must be one-dimensional, got shape {y.shape}")
    return y


def _build_steps(points: np.ndarray, variances: np.ndarray, z: float) -> tuple[ForecastStep, ...]:
    steps = []
    for h, (pt, var) in enumerate(zip(points, variances), start=1):
        half = z * float(np.sqrt(max(var, 0.0)))
        steps.append(ForecastStep(step=h, point=float(pt), lower=float(pt - half), upper=float(pt + half)))
    return tuple(steps)


class ForecastEngine:
    """Automatic seasonal ARIMA forecaster for a single cumulative series.

    One call runs the whole pipeline: choose differencing, search orders,
    fit, and project with prediction intervals. Only precondition errors
    escape; any algorithmic failure degrades to a naive forecast.
    """

    def __init__(self, cfg: Optional[EngineConfig] = None, fit_fn: FitFn = fit_candidate) -> None:
        self._cfg = cfg or EngineConfig()
        self._fit_fn = fit_fn

    @property
    def config(self) -> EngineConfig:
        return self._cfg

    def min_length(self, seasonal_period: int) -> int:
        return max(2 * seasonal_period, self._cfg.min_observations)

    def validate(self, y: np.ndarray, horizon: int, seasonal_period: int) -> None:
        if int(horizon) < 1:
            raise InvalidSeriesError(f"horizon must be >= 1, got {horizon}")
        if int(seasonal_period) < 1:
            raise InvalidSeriesError(f"seasonal_period must be >= 1, got {seasonal_period}")
        required = self.min_length(int(seasonal_period))
        if len(y) < required:
            raise InsufficientDataError(len(y), required)
        if not np.all(np.isfinite(y)):
            raise InvalidSeriesError("Series contains NaN or infinite values.")

    def forecast(
        self,
        series: SeriesLike,
        horizon: int,
        seasonal_period: Optional[int] = None,
    ) -> ForecastResult:
        if seasonal_period is None:
            if isinstance(series, ObservedSeries):
                seasonal_period = series.seasonal_period
            else:
                seasonal_period = self._cfg.seasonal_period

        y = _as_array(series)
        self.validate(y, horizon, seasonal_period)
        horizon = int(horizon)
        s = int(seasonal_period)
        start_date = series.last_date if isinstance(series, ObservedSeries) else None

        d, D = choose_differencing(y, s, self._cfg)
        diffed = apply_differencing(y, d, D, s)
        logger.debug("Differencing chosen: d=%d, D=%d (n=%d)", d, D, len(diffed.values))

        outcome = OrderSearch(self._cfg, fit_fn=self._fit_fn).run(diffed.values, d, D, s if s > 1 else 1)
        if outcome.best is None:
            return self._naive(y, horizon, outcome.n_evaluated, start_date)

        try:
            return self._project(outcome.best, diffed, horizon, outcome.n_evaluated, start_date)
        except (ValueError, FloatingPointError, OverflowError) as exc:
            logger.warning("Projection with %s failed (%s), using naive forecast", outcome.best.candidate, exc)
            return self._naive(y, horizon, outcome.n_evaluated, start_date)

    def _z(self) -> float:
        return float(norm.ppf(0.5 + self._cfg.confidence / 2.0))

    def _project(
        self,
        model: FittedModel,
        diffed,
        horizon: int,
        n_evaluated: int,
        start_date,
    ) -> ForecastResult:
        with np.errstate(over="raise", invalid="raise"):
            w_hat = forecast_differenced(model, diffed.values, horizon)
            points = integrate(w_hat, diffed)
            psi = psi_weights(model, horizon)
            variances = model.sigma2 * np.cumsum(psi ** 2)

        if not (np.all(np.isfinite(points)) and np.all(np.isfinite(variances))):
            raise ValueError("non-finite forecast")

        return ForecastResult(
            steps=_build_steps(points, variances, self._z()),
            model=model,
            degraded=False,
            confidence=self._cfg.confidence,
            candidates_evaluated=n_evaluated,
            start_date=start_date,
        )

    def _naive(self, y: np.ndarray, horizon: int, n_evaluated: int, start_date) -> ForecastResult:
        logger.warning("No viable ARIMA candidate, falling back to naive forecast")
        last = float(y[-1])
        with np.errstate(all="ignore"):
            diffs = np.diff(y)
            var1 = float(np.var(diffs)) if len(diffs) else 0.0
        if not np.isfinite(var1):
            var1 = float("inf")
        points = np.full(horizon, last)
        variances = var1 * np.arange(1, horizon + 1, dtype=float)
        return ForecastResult(
            steps=_build_steps(points, variances, self._z()),
            model=None,
            degraded=True,
            confidence=self._cfg.confidence,
            candidates_evaluated=n_evaluated,
            start_date=start_date,
        )


def forecast(
    series: SeriesLike,
    horizon: int,
    seasonal_period: int = 7,
    cfg: Optional[EngineConfig] = None,
) -> ForecastResult:
    return ForecastEngine(cfg).forecast(series, horizon, seasonal_period)
