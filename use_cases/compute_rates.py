from __future__ import annotations

from typing import Optional

import pandas as pd

from core.config import AppConfig
from infrastructure.aggregation.rates import case_fatality_rate


def compute_rates_uc(cfg: AppConfig, df: pd.DataFrame, by: Optional[str] = None) -> pd.DataFrame:
    return case_fatality_rate(df, by=by, cfg=cfg)
