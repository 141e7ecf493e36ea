from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from statsmodels.tools.sm_exceptions import InterpolationWarning
from statsmodels.tsa.stattools import kpss

from core.config import EngineConfig
from core.errors import NonStationaryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DifferencedSeries:
    """Result of applying D seasonal then d regular differences.

    `history[k]` is the series before the k-th difference and `lags[k]` the
    lag used, which is all that is needed to integrate forecasts back.
    """

    values: np.ndarray
    d: int
    D: int
    history: Tuple[np.ndarray, ...]
    lags: Tuple[int, ...]


def difference(x: np.ndarray, lag: int = 1) -> np.ndarray:
    x = np.asarray(x, dtype=float)
    if lag >= len(x):
        return np.array([], dtype=float)
    return x[lag:] - x[:-lag]


def is_flat(x: np.ndarray, scale: float = 1.0) -> bool:
    x = np.asarray(x, dtype=float)
    if len(x) == 0:
        return True
    tol = 1e-9 * max(1.0, abs(float(scale)))
    return float(np.ptp(x)) <= tol


def apply_differencing(y: np.ndarray, d: int, D: int, s: int) -> DifferencedSeries:
    z = np.asarray(y, dtype=float)
    history: List[np.ndarray] = []
    lags: List[int] = []
    for lag in [s] * D + [1] * d:
        history.append(z)
        lags.append(lag)
        z = difference(z, lag)
    return DifferencedSeries(values=z, d=d, D=D, history=tuple(history), lags=tuple(lags))


def integrate(forecasts: np.ndarray, diffed: DifferencedSeries) -> np.ndarray:
    f = np.asarray(forecasts, dtype=float)
    for z, lag in zip(reversed(diffed.history), reversed(diffed.lags)):
        ext = list(z)
        n = len(z)
        out = []
        for h, v in enumerate(f):
            level = v + ext[n + h - lag]
            ext.append(level)
            out.append(level)
        f = np.asarray(out, dtype=float)
    return f


def kpss_is_stationary(x: np.ndarray, alpha: float) -> bool:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", InterpolationWarning)
        p_value = kpss(x, regression="c", nlags="auto")[1]
    return bool(p_value >= alpha)


def _variance_stops_decreasing(x: np.ndarray) -> bool:
    nxt = difference(x)
    if len(nxt) < 2:
        return True
    return float(np.var(nxt)) >= float(np.var(x))


def is_stationary(x: np.ndarray, cfg: EngineConfig, scale: float = 1.0) -> bool:
    if is_flat(x, scale):
        return True
    # automatic lag selection in kpss is unstable on near-linear input
    if len(x) >= cfg.kpss_min_length and not is_flat(difference(x), scale):
        try:
            return kpss_is_stationary(x, cfg.stationarity_alpha)
        except (ValueError, OverflowError, FloatingPointError, np.linalg.LinAlgError) as exc:
            logger.debug("KPSS unavailable (%s), using variance heuristic", exc)
    return _variance_stops_decreasing(x)


def choose_seasonal_differencing(y: np.ndarray, s: int, cfg: EngineConfig) -> int:
    if s <= 1 or cfg.max_D == 0:
        return 0
    x = difference(y)
    if len(x) < 3 * s:
        return 0
    scale = float(np.max(np.abs(y))) if len(y) else 1.0
    if is_flat(x, scale):
        return 0
    xs = difference(x, s)
    if float(np.var(xs)) < cfg.seasonal_variance_ratio * float(np.var(x)):
        return 1
    return 0


def choose_differencing(y: np.ndarray, s: int, cfg: EngineConfig) -> Tuple[int, int]:
    """Return the minimal (d, D) after which the series looks stationary.

    Falls back to d = max_d when nothing passes, unless strict mode is on.
    """
    y = np.asarray(y, dtype=float)
    scale = float(np.max(np.abs(y))) if len(y) else 1.0

    D = choose_seasonal_differencing(y, s, cfg)
    z = apply_differencing(y, 0, D, s).values

    for d in range(cfg.max_d + 1):
        if len(z) < 2:
            logger.debug("Series exhausted at d=%d, D=%d", d, D)
            return max(d - 1, 0), D
        if is_stationary(z, cfg, scale):
            return d, D
        if d < cfg.max_d:
            z = difference(z)

    if cfg.strict_stationarity:
        raise NonStationaryError(cfg.max_d, D)
    logger.debug("No stationary differencing found, using d=%d, D=%d", cfg.max_d, D)
    return cfg.max_d, D
