"""
Shared fixtures: synthetic cumulative series and JHU-style wide frames.
"""
import numpy as np
import pandas as pd
import pytest

from core.config import AppConfig, EngineConfig
from domain.entities import CandidateModel, FittedModel

WEEKLY = np.array([1.0, 0.8, 0.9, 1.1, 1.2, 0.6, 0.4])


def make_unfit(c: CandidateModel, n: int = 0) -> FittedModel:
    return FittedModel(
        candidate=c,
        ar=(),
        ma=(),
        seasonal_ar=(),
        seasonal_ma=(),
        constant=0.0,
        sigma2=float("inf"),
        aicc=float("inf"),
        n_obs=n,
        converged=False,
    )


@pytest.fixture
def weekly() -> np.ndarray:
    return WEEKLY.copy()


@pytest.fixture
def unfit():
    return make_unfit


@pytest.fixture
def engine_cfg() -> EngineConfig:
    return EngineConfig(max_fits=20, max_iterations=200)


@pytest.fixture
def app_cfg(engine_cfg) -> AppConfig:
    return AppConfig(engine=engine_cfg, horizon=7, holdout=7)


@pytest.fixture
def constant_series() -> np.ndarray:
    return np.full(100, 100.0)


@pytest.fixture
def linear_series() -> np.ndarray:
    return 1000.0 + 10.0 * np.arange(60, dtype=float)


@pytest.fixture
def noisy_cumulative() -> np.ndarray:
    rng = np.random.default_rng(42)
    n = 84
    daily = 1000.0 * WEEKLY[np.arange(n) % 7] + rng.normal(0.0, 40.0, n)
    return np.cumsum(np.maximum(daily, 0.0))


def _wide(values_by_row: list[tuple[str, str, list[float]]], dates: pd.DatetimeIndex) -> pd.DataFrame:
    rows = []
    for province, country, vals in values_by_row:
        row = {"Province/State": province, "Country/Region": country, "Lat": 0.0, "Long": 0.0}
        for d, v in zip(dates, vals):
            row[f"{d.month}/{d.day}/{d.strftime('%y')}"] = v
        rows.append(row)
    return pd.DataFrame(rows)


@pytest.fixture
def wide_dates() -> pd.DatetimeIndex:
    return pd.date_range("2020-01-22", periods=42, freq="D")


@pytest.fixture
def confirmed_wide(wide_dates) -> pd.DataFrame:
    n = len(wide_dates)
    t = np.arange(n, dtype=float)
    return _wide(
        [
            ("Ontario", "Canada", list(10.0 * t)),
            ("Quebec", "Canada", list(5.0 * t)),
            ("", "France", list(20.0 * t + 1.0)),
            ("", "Atlantis", list(np.full(n, 3.0))),
        ],
        wide_dates,
    )


@pytest.fixture
def deaths_wide(wide_dates) -> pd.DataFrame:
    n = len(wide_dates)
    t = np.arange(n, dtype=float)
    return _wide(
        [
            ("Ontario", "Canada", list(1.0 * t)),
            ("Quebec", "Canada", list(0.5 * t)),
            ("", "France", list(2.0 * t)),
            ("", "Atlantis", list(np.zeros(n))),
        ],
        wide_dates,
    )


@pytest.fixture
def continent_of() -> dict:
    return {"Canada": "North America", "France": "Europe"}
