import numpy as np
import pandas as pd
import pytest

from core.errors import DatasetValidationError, InsufficientDataError
from domain.entities import ObservedSeries
from infrastructure.db.sqlite_db import SQLiteDB
from infrastructure.repositories.sqlite_forecast_repository import SQLiteForecastRepository
from use_cases.aggregate_series import AggregateInput, aggregate_series_uc
from use_cases.compute_rates import compute_rates_uc
from use_cases.delete_run import delete_run_uc
from use_cases.evaluate_forecast import evaluate_forecast_uc
from use_cases.list_runs import list_runs_uc
from use_cases.load_run import load_run_uc
from use_cases.run_forecast import RunForecastInput, run_forecast_uc
from use_cases.save_run import SaveRunInput, save_run_uc


@pytest.fixture
def global_df(app_cfg, confirmed_wide, deaths_wide):
    return aggregate_series_uc(app_cfg, AggregateInput(confirmed_wide, deaths_wide)).global_df


class TestAggregateAndRates:
    def test_continent_frame_only_with_mapping(self, app_cfg, confirmed_wide, deaths_wide, continent_of):
        without = aggregate_series_uc(app_cfg, AggregateInput(confirmed_wide, deaths_wide))
        assert without.continent_df is None
        with_map = aggregate_series_uc(app_cfg, AggregateInput(confirmed_wide, deaths_wide, continent_of))
        assert "continent" in with_map.continent_df.columns

    def test_rates_on_global(self, app_cfg, global_df):
        rated = compute_rates_uc(app_cfg, global_df)
        assert "cfr" in rated.columns
        assert rated["cfr"].between(0.0, 1.0).all()


class TestRunForecast:
    def test_forecast_on_aggregated_series(self, app_cfg, global_df):
        out = run_forecast_uc(app_cfg, RunForecastInput(df=global_df, horizon=7))
        assert len(out.result) == 7
        assert out.meta["rows_count"] == len(global_df)
        assert out.meta["date_range_end"] == global_df["date"].iloc[-1].date().isoformat()
        assert out.meta["horizon"] == 7
        frame = out.result.to_frame()
        assert frame["date"].iloc[0] == global_df["date"].iloc[-1] + pd.Timedelta(days=1)

    def test_forecast_deaths_column(self, app_cfg, global_df):
        out = run_forecast_uc(app_cfg, RunForecastInput(df=global_df, horizon=3, target_col="deaths"))
        assert out.meta["series_name"] == "deaths"
        assert out.result.points == pytest.approx(
            [global_df["deaths"].iloc[-1] + 3.5 * h for h in (1, 2, 3)], rel=1e-6
        )

    def test_gap_in_dates_is_rejected(self, app_cfg, global_df):
        with pytest.raises(DatasetValidationError):
            run_forecast_uc(app_cfg, RunForecastInput(df=global_df.drop(index=5), horizon=3))

    def test_missing_target_column(self, app_cfg, global_df):
        with pytest.raises(DatasetValidationError) as err:
            run_forecast_uc(app_cfg, RunForecastInput(df=global_df, horizon=3, target_col="recovered"))
        assert err.value.missing_fields == ["recovered"]


class TestEvaluate:
    def test_holdout_metrics(self, app_cfg, noisy_cumulative):
        series = ObservedSeries.from_values(noisy_cumulative, seasonal_period=7)
        out = evaluate_forecast_uc(app_cfg, series, holdout=7)
        assert set(out.metrics) == {"mae", "rmse", "mape", "coverage"}
        assert len(out.actual) == 7
        assert out.metrics["rmse"] >= out.metrics["mae"] >= 0.0
        assert 0.0 <= out.metrics["coverage"] <= 1.0

    def test_perfect_on_linear(self, app_cfg, linear_series):
        out = evaluate_forecast_uc(app_cfg, ObservedSeries.from_values(linear_series), holdout=7)
        assert out.metrics["mae"] == pytest.approx(0.0, abs=1e-6)
        assert out.metrics["mape"] == pytest.approx(0.0, abs=1e-6)

    def test_holdout_too_long(self, app_cfg):
        series = ObservedSeries.from_values(np.arange(20, dtype=float))
        with pytest.raises(InsufficientDataError):
            evaluate_forecast_uc(app_cfg, series, holdout=10)

    def test_zero_holdout_is_rejected(self, app_cfg, linear_series):
        with pytest.raises(InsufficientDataError):
            evaluate_forecast_uc(app_cfg, ObservedSeries.from_values(linear_series), holdout=0)


class TestRunHistory:
    def test_save_list_load_delete(self, tmp_path, app_cfg, global_df):
        repo = SQLiteForecastRepository(SQLiteDB(str(tmp_path / "h.sqlite3")))
        repo.init_schema()

        out = run_forecast_uc(app_cfg, RunForecastInput(df=global_df, horizon=5))
        run_id = save_run_uc(
            repo,
            SaveRunInput(
                label="global",
                series_name=out.meta["series_name"],
                rows_count=out.meta["rows_count"],
                date_range_start=global_df["date"].iloc[0].date(),
                date_range_end=global_df["date"].iloc[-1].date(),
                result=out.result,
            ),
        )

        runs = list_runs_uc(repo)
        assert [r.run_id for r in runs] == [run_id]
        assert runs[0].horizon == 5
        assert runs[0].model_label == out.meta["model"]

        stored = load_run_uc(repo, run_id)
        assert [s.point for s in stored.steps] == pytest.approx(out.result.points)

        delete_run_uc(repo, run_id)
        assert list_runs_uc(repo) == []
        with pytest.raises(KeyError):
            delete_run_uc(repo, run_id)
