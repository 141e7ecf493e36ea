from __future__ import annotations

import pandas as pd

from core.errors import DatasetValidationError
from domain.entities import ObservedSeries


def load_and_validate_df(
    df: pd.DataFrame,
    required_cols: list[str],
    date_col: str,
) -> pd.DataFrame:
    if not isinstance(df, pd.DataFrame):
        raise DatasetValidationError("Input is not a DataFrame.")

    missing = [c for c in required_cols if c not in df.columns]
    if missing:
        raise DatasetValidationError(
            message="Required columns are missing",
            missing_fields=missing,
        )

    try:
        df = df.copy()
        df[date_col] = pd.to_datetime(df[date_col])
    except (ValueError, TypeError) as exc:
        raise DatasetValidationError(
            f"Column `{date_col}` has an invalid date format."
        ) from exc

    if df.empty:
        raise DatasetValidationError("Dataset is empty.")

    return df


def clean_core_cols(df: pd.DataFrame, cols: list[str]) -> pd.DataFrame:
    for c in cols:
        if c not in df.columns:
            raise DatasetValidationError(
                message=f"Column `{c}` is missing",
                missing_fields=[c],
            )

        if not pd.api.types.is_numeric_dtype(df[c]):
            raise DatasetValidationError(
                f"Column `{c}` must be numeric."
            )

    df = df.dropna(subset=cols)
    if df.empty:
        raise DatasetValidationError(
            "No valid rows left after cleaning."
        )

    return df


def to_observed_series(
    df: pd.DataFrame,
    value_col: str,
    date_col: str,
    seasonal_period: int = 7,
) -> ObservedSeries:
    """Turn a date-sorted daily frame into an ObservedSeries.

    Decreases in a cumulative column are kept as they are; only the index is
    checked (strictly increasing, one row per day).
    """
    df = clean_core_cols(load_and_validate_df(df, [date_col, value_col], date_col), [value_col])

    dates = pd.DatetimeIndex(df[date_col])
    if not dates.is_monotonic_increasing or dates.has_duplicates:
        raise DatasetValidationError(f"Column `{date_col}` must be strictly increasing.")
    if len(dates) > 1 and (dates[1:] - dates[:-1] != pd.Timedelta(days=1)).any():
        raise DatasetValidationError(f"Column `{date_col}` has gaps; a daily index is required.")

    s = pd.Series(df[value_col].to_numpy(dtype=float), index=dates, name=value_col)
    return ObservedSeries.from_pandas(s, seasonal_period=seasonal_period)
