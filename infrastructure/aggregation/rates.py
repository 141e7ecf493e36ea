from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from core.config import AppConfig, CFG
from core.errors import DatasetValidationError


def case_fatality_rate(
    df: pd.DataFrame,
    by: Optional[str] = None,
    cfg: AppConfig = CFG,
) -> pd.DataFrame:
    """Add a `cfr` column (deaths / confirmed, 0 where nothing is confirmed)."""
    required = [cfg.date_col, cfg.confirmed_col, cfg.deaths_col] + ([by] if by else [])
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise DatasetValidationError("Required columns are missing", missing_fields=missing)

    out = df.copy()
    confirmed = out[cfg.confirmed_col].to_numpy(dtype=float)
    deaths = out[cfg.deaths_col].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        cfr = np.where(confirmed > 0, deaths / confirmed, 0.0)
    out["cfr"] = cfr

    keys = [by, cfg.date_col] if by else [cfg.date_col]
    return out.sort_values(keys).reset_index(drop=True)


def latest_rates(df: pd.DataFrame, by: str, cfg: AppConfig = CFG) -> pd.DataFrame:
    """Last-date CFR per group, highest first."""
    rated = case_fatality_rate(df, by=by, cfg=cfg)
    last = rated.groupby(by, as_index=False).tail(1)
    cols = [by, cfg.date_col, cfg.confirmed_col, cfg.deaths_col, "cfr"]
    return last[cols].sort_values(["cfr", by], ascending=[False, True]).reset_index(drop=True)
