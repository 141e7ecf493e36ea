from __future__ import annotations

import logging
import math
from typing import Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares
from scipy.signal import lfilter

from core.config import EngineConfig
from domain.entities import CandidateModel, FittedModel

logger = logging.getLogger(__name__)


def ar_polynomial(ar: Sequence[float], seasonal_ar: Sequence[float], s: int) -> np.ndarray:
    """Coefficients of phi(B) * Phi(B^s) in increasing powers of B."""
    a = np.concatenate([[1.0], -np.asarray(ar, dtype=float)])
    A = np.zeros(s * len(seasonal_ar) + 1)
    A[0] = 1.0
    for i, c in enumerate(seasonal_ar, start=1):
        A[i * s] = -float(c)
    return np.convolve(a, A)


def ma_polynomial(ma: Sequence[float], seasonal_ma: Sequence[float], s: int) -> np.ndarray:
    b = np.concatenate([[1.0], np.asarray(ma, dtype=float)])
    B = np.zeros(s * len(seasonal_ma) + 1)
    B[0] = 1.0
    for i, c in enumerate(seasonal_ma, start=1):
        B[i * s] = float(c)
    return np.convolve(b, B)


def differencing_polynomial(d: int, D: int, s: int) -> np.ndarray:
    poly = np.array([1.0])
    for _ in range(d):
        poly = np.convolve(poly, [1.0, -1.0])
    seasonal = np.zeros(s + 1)
    seasonal[0], seasonal[s] = 1.0, -1.0
    for _ in range(D):
        poly = np.convolve(poly, seasonal)
    return poly


def roots_outside_unit_circle(poly: np.ndarray) -> bool:
    """True if every root of poly(B) lies strictly outside the unit circle."""
    poly = np.trim_zeros(np.asarray(poly, dtype=float), "b")
    if len(poly) <= 1:
        return True
    # roots of z^n poly(1/z) are the reciprocals of the roots of poly(B)
    return bool(np.all(np.abs(np.roots(poly)) < 1.0 - 1e-8))


def _split_params(x: np.ndarray, c: CandidateModel) -> Tuple[float, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    i = 0
    mu = 0.0
    if c.has_constant:
        mu = float(x[0])
        i = 1
    ar = x[i : i + c.p]
    i += c.p
    ma = x[i : i + c.q]
    i += c.q
    sar = x[i : i + c.P]
    i += c.P
    sma = x[i : i + c.Q]
    return mu, ar, ma, sar, sma


def css_residuals(w: np.ndarray, x: np.ndarray, c: CandidateModel) -> np.ndarray:
    """One-step-ahead errors with pre-sample values at the mean and zero pre-sample errors."""
    mu, ar, ma, sar, sma = _split_params(x, c)
    a = ar_polynomial(ar, sar, c.s)
    b = ma_polynomial(ma, sma, c.s)
    with np.errstate(all="ignore"):
        return lfilter(a, b, w - mu)


def aicc(sse: float, n: int, k: int, sigma2_floor: float) -> Tuple[float, float]:
    sigma2 = max(sse / n, sigma2_floor)
    if n - k - 1 <= 0:
        return sigma2, math.inf
    loglik = -0.5 * n * (math.log(2.0 * math.pi * sigma2) + 1.0)
    return sigma2, -2.0 * loglik + 2.0 * k + 2.0 * k * (k + 1) / (n - k - 1)


def _unfit(c: CandidateModel, n: int) -> FittedModel:
    return FittedModel(
        candidate=c,
        ar=(),
        ma=(),
        seasonal_ar=(),
        seasonal_ma=(),
        constant=0.0,
        sigma2=math.inf,
        aicc=math.inf,
        n_obs=n,
        converged=False,
    )


def fit_candidate(w: np.ndarray, c: CandidateModel, cfg: EngineConfig) -> FittedModel:
    """Estimate coefficients for one candidate by conditional least squares.

    The differenced series is rescaled to unit variance before optimisation
    and the estimates are mapped back afterwards. Any numerical failure gives
    a non-converged model with an infinite score.
    """
    w = np.asarray(w, dtype=float)
    n = len(w)
    k = c.n_params + int(c.has_constant) + 1
    if n - k - 1 <= 0 or not np.all(np.isfinite(w)):
        return _unfit(c, n)

    sd = float(np.std(w))
    scale = sd if np.isfinite(sd) and sd > 0 else 1.0
    ws = w / scale

    x0 = np.zeros(int(c.has_constant) + c.n_params)
    if c.has_constant:
        x0[0] = float(np.mean(ws))

    if len(x0) == 0:
        x = x0
        converged = True
    else:
        try:
            res = least_squares(
                lambda params: css_residuals(ws, params, c),
                x0,
                method="trf",
                max_nfev=cfg.max_iterations,
                ftol=cfg.tolerance,
                xtol=cfg.tolerance,
                gtol=cfg.tolerance,
            )
        except (ValueError, FloatingPointError, np.linalg.LinAlgError) as exc:
            logger.debug("%s: optimiser failed: %s", c, exc)
            return _unfit(c, n)
        x = res.x
        converged = bool(res.success and res.status > 0)

    if not converged or not np.all(np.isfinite(x)):
        logger.debug("%s: did not converge", c)
        return _unfit(c, n)

    mu, ar, ma, sar, sma = _split_params(x, c)
    if not roots_outside_unit_circle(ar_polynomial(ar, sar, c.s)):
        logger.debug("%s: non-stationary AR part", c)
        return _unfit(c, n)
    if not roots_outside_unit_circle(ma_polynomial(ma, sma, c.s)):
        logger.debug("%s: non-invertible MA part", c)
        return _unfit(c, n)

    resid = css_residuals(ws, x, c) * scale
    if not np.all(np.isfinite(resid)):
        return _unfit(c, n)

    sigma2, score = aicc(float(np.sum(resid ** 2)), n, k, cfg.sigma2_floor)
    if not np.isfinite(score):
        return _unfit(c, n)

    return FittedModel(
        candidate=c,
        ar=tuple(float(v) for v in ar),
        ma=tuple(float(v) for v in ma),
        seasonal_ar=tuple(float(v) for v in sar),
        seasonal_ma=tuple(float(v) for v in sma),
        constant=float(mu * scale),
        sigma2=float(sigma2),
        aicc=float(score),
        n_obs=n,
        converged=True,
        residuals=tuple(float(v) for v in resid),
    )


def forecast_differenced(model: FittedModel, w: np.ndarray, horizon: int) -> np.ndarray:
    """Project the differenced series `horizon` steps ahead (future errors at zero)."""
    c = model.candidate
    a = ar_polynomial(model.ar, model.seasonal_ar, c.s)
    b = ma_polynomial(model.ma, model.seasonal_ma, c.s)

    n = len(w)
    xs = list(np.asarray(w, dtype=float) - model.constant)
    es = list(model.residuals)

    for h in range(horizon):
        t = n + h
        val = 0.0
        for j in range(1, len(a)):
            if t - j >= 0 and a[j] != 0.0:
                val -= a[j] * xs[t - j]
        for j in range(1, len(b)):
            if 0 <= t - j < n and b[j] != 0.0:
                val += b[j] * es[t - j]
        xs.append(val)

    return np.asarray(xs[n:], dtype=float) + model.constant


def psi_weights(model: FittedModel, horizon: int) -> np.ndarray:
    """MA(infinity) weights of the integrated model, psi_0 .. psi_{horizon-1}."""
    c = model.candidate
    phi = np.convolve(
        ar_polynomial(model.ar, model.seasonal_ar, c.s),
        differencing_polynomial(c.d, c.D, c.s),
    )
    theta = ma_polynomial(model.ma, model.seasonal_ma, c.s)

    psi = np.zeros(horizon)
    psi[0] = 1.0
    for j in range(1, horizon):
        v = theta[j] if j < len(theta) else 0.0
        for i in range(1, min(j, len(phi) - 1) + 1):
            v -= phi[i] * psi[j - i]
        psi[j] = v
    return psi
