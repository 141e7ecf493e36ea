import warnings

import numpy as np
import pytest

from core.config import EngineConfig
from core.errors import NonStationaryError
from infrastructure.ml.differencing import (
    apply_differencing,
    choose_differencing,
    choose_seasonal_differencing,
    difference,
    integrate,
    is_flat,
    kpss_is_stationary,
)


class TestDifference:
    def test_first_difference(self):
        assert list(difference(np.array([1.0, 4.0, 9.0, 16.0]))) == [3.0, 5.0, 7.0]

    def test_seasonal_lag(self):
        x = np.arange(10, dtype=float)
        assert np.all(difference(x, 7) == 7.0)

    def test_lag_longer_than_series(self):
        assert len(difference(np.ones(3), 5)) == 0

    def test_flatness_uses_scale(self):
        assert is_flat(np.full(5, 3.0))
        assert not is_flat(np.array([0.0, 1.0]))
        assert is_flat(np.array([1e6, 1e6 + 1e-4]), scale=1e6)


class TestIntegrate:
    def test_recovers_levels_from_true_differences(self):
        y = np.cumsum(np.arange(1, 31, dtype=float)) + 5.0 * (np.arange(30) % 7)
        train, future = y[:23], y[23:]
        diffed = apply_differencing(train, d=1, D=1, s=7)
        # differences the full series would have had over the future window
        full = apply_differencing(y, d=1, D=1, s=7).values
        w_future = full[len(diffed.values):]
        assert integrate(w_future, diffed) == pytest.approx(future)

    def test_no_differencing_is_identity(self):
        diffed = apply_differencing(np.array([1.0, 2.0, 3.0]), d=0, D=0, s=7)
        assert list(integrate(np.array([7.0, 8.0]), diffed)) == [7.0, 8.0]


class TestChooseDifferencing:
    def test_constant_needs_none(self, constant_series):
        assert choose_differencing(constant_series, 7, EngineConfig()) == (0, 0)

    def test_linear_needs_one(self, linear_series):
        assert choose_differencing(linear_series, 7, EngineConfig()) == (1, 0)

    def test_weekly_pattern_is_differenced_seasonally(self, weekly):
        daily = 100.0 * weekly[np.arange(70) % 7]
        y = np.cumsum(daily)
        assert choose_seasonal_differencing(y, 7, EngineConfig()) == 1
        assert choose_differencing(y, 7, EngineConfig()) == (0, 1)

    def test_no_seasonal_term_for_period_one(self, noisy_cumulative):
        assert choose_seasonal_differencing(noisy_cumulative, 1, EngineConfig()) == 0

    def test_exhausted_bound_uses_max_d(self):
        y = 1.1 ** np.arange(60, dtype=float)
        d, _ = choose_differencing(y, 7, EngineConfig())
        assert d == 2

    def test_strict_mode_raises(self):
        y = 1.1 ** np.arange(60, dtype=float)
        with pytest.raises(NonStationaryError):
            choose_differencing(y, 7, EngineConfig(strict_stationarity=True))

    def test_correction_in_linear_series(self, linear_series):
        y = linear_series.copy()
        y[30] -= 50.0
        d, D = choose_differencing(y, 7, EngineConfig())
        assert d in (1, 2)
        assert D == 0

    def test_kpss_failure_uses_variance_rule(self, monkeypatch, linear_series):
        def boom(x, alpha):
            raise OverflowError("cannot convert float infinity to integer")

        monkeypatch.setattr("infrastructure.ml.differencing.kpss_is_stationary", boom)
        y = linear_series.copy()
        y[30] -= 50.0
        assert choose_differencing(y, 7, EngineConfig()) == (1, 0)

    def test_kpss_on_trend_without_future_warning(self):
        y = 5.0 * np.arange(80) + np.random.default_rng(3).normal(0.0, 1.0, 80)
        with warnings.catch_warnings():
            warnings.simplefilter("error", FutureWarning)
            assert not kpss_is_stationary(y, 0.05)
