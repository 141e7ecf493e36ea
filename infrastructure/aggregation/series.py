from __future__ import annotations

import logging
from typing import Mapping, Optional

import pandas as pd

from core.config import AppConfig, CFG
from core.errors import DatasetValidationError

logger = logging.getLogger(__name__)


def _parse_date_columns(cols: pd.Index) -> pd.DatetimeIndex:
    # JHU headers look like 1/22/20; fall back to generic parsing for ISO dates
    parsed = pd.to_datetime(pd.Series(cols, dtype=str), format="%m/%d/%y", errors="coerce")
    retry = parsed.isna()
    if retry.any():
        parsed[retry] = pd.to_datetime(pd.Series(cols, dtype=str)[retry], errors="coerce")
    bad = [str(c) for c, ok in zip(cols, parsed.notna()) if not ok]
    if bad:
        raise DatasetValidationError("Unrecognised date columns", missing_fields=bad)
    return pd.DatetimeIndex(parsed)


def melt_wide(df: pd.DataFrame, value_name: str, cfg: AppConfig = CFG) -> pd.DataFrame:
    """Wide country x date matrix -> long `country, date, <value_name>` rows.

    Provinces of the same country are summed.
    """
    if cfg.country_col not in df.columns:
        raise DatasetValidationError(
            message="Country column is missing",
            missing_fields=[cfg.country_col],
        )

    id_cols = [c for c in cfg.id_cols if c in df.columns]
    date_cols = [c for c in df.columns if c not in id_cols]
    if not date_cols:
        raise DatasetValidationError("No date columns found.")

    dates = _parse_date_columns(pd.Index(date_cols))
    values = df[date_cols].apply(pd.to_numeric, errors="coerce").fillna(0.0)
    values.columns = dates
    values.insert(0, "country", df[cfg.country_col].astype(str).str.strip().to_numpy())

    long = values.melt(id_vars="country", var_name=cfg.date_col, value_name=value_name)
    long[cfg.date_col] = pd.to_datetime(long[cfg.date_col])
    out = long.groupby(["country", cfg.date_col], as_index=False)[value_name].sum()
    return out.sort_values(["country", cfg.date_col]).reset_index(drop=True)


def _fill_daily(df: pd.DataFrame, date_col: str, value_cols: list[str]) -> pd.DataFrame:
    df = df.set_index(date_col).sort_index()
    full = pd.date_range(df.index.min(), df.index.max(), freq="D")
    df = df.reindex(full)
    df[value_cols] = df[value_cols].ffill().fillna(0.0)
    df.index.name = date_col
    return df.reset_index()


def _merge_measures(
    confirmed_wide: pd.DataFrame,
    deaths_wide: pd.DataFrame,
    cfg: AppConfig,
) -> pd.DataFrame:
    confirmed = melt_wide(confirmed_wide, cfg.confirmed_col, cfg)
    deaths = melt_wide(deaths_wide, cfg.deaths_col, cfg)
    merged = confirmed.merge(deaths, on=["country", cfg.date_col], how="outer")
    return merged


def aggregate_global(
    confirmed_wide: pd.DataFrame,
    deaths_wide: pd.DataFrame,
    cfg: AppConfig = CFG,
) -> pd.DataFrame:
    """Global daily totals: `date, confirmed, deaths`, sorted and gap-free."""
    merged = _merge_measures(confirmed_wide, deaths_wide, cfg)
    value_cols = [cfg.confirmed_col, cfg.deaths_col]
    totals = merged.groupby(cfg.date_col, as_index=False)[value_cols].sum(min_count=1)
    out = _fill_daily(totals, cfg.date_col, value_cols)
    logger.info(
        "Aggregated %d countries into %d global days",
        merged["country"].nunique(),
        len(out),
    )
    return out


def aggregate_by_country(
    confirmed_wide: pd.DataFrame,
    deaths_wide: pd.DataFrame,
    cfg: AppConfig = CFG,
) -> pd.DataFrame:
    merged = _merge_measures(confirmed_wide, deaths_wide, cfg)
    merged = merged.sort_values(["country", cfg.date_col]).reset_index(drop=True)
    value_cols = [cfg.confirmed_col, cfg.deaths_col]
    merged[value_cols] = merged.groupby("country")[value_cols].ffill().fillna(0.0)
    return merged


def aggregate_by_continent(
    confirmed_wide: pd.DataFrame,
    deaths_wide: pd.DataFrame,
    continent_of: Mapping[str, str],
    cfg: AppConfig = CFG,
    unknown: Optional[str] = None,
) -> pd.DataFrame:
    """Per-continent daily totals: `date, continent, confirmed, deaths`.

    Countries absent from `continent_of` are grouped under `cfg.unknown_continent`.
    """
    unknown = unknown or cfg.unknown_continent
    merged = _merge_measures(confirmed_wide, deaths_wide, cfg)
    merged["continent"] = merged["country"].map(dict(continent_of)).fillna(unknown)

    unmapped = sorted(merged.loc[merged["continent"] == unknown, "country"].unique())
    if unmapped and unknown not in set(continent_of.values()):
        logger.warning("%d countries without a continent: %s", len(unmapped), ", ".join(unmapped[:10]))

    value_cols = [cfg.confirmed_col, cfg.deaths_col]
    totals = merged.groupby([cfg.date_col, "continent"], as_index=False)[value_cols].sum(min_count=1)

    frames = []
    for continent, part in totals.groupby("continent", sort=True):
        filled = _fill_daily(part.drop(columns="continent"), cfg.date_col, value_cols)
        filled.insert(1, "continent", continent)
        frames.append(filled)
    return pd.concat(frames, ignore_index=True)
