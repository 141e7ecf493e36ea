from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import pandas as pd

from core.config import AppConfig
from infrastructure.aggregation.series import aggregate_by_continent, aggregate_global


@dataclass(frozen=True)
class AggregateInput:
    confirmed_wide: pd.DataFrame
    deaths_wide: pd.DataFrame
    continent_of: Optional[Mapping[str, str]] = None


@dataclass(frozen=True)
class AggregateOutput:
    global_df: pd.DataFrame
    continent_df: Optional[pd.DataFrame]


def aggregate_series_uc(cfg: AppConfig, inp: AggregateInput) -> AggregateOutput:
    global_df = aggregate_global(inp.confirmed_wide, inp.deaths_wide, cfg)
    continent_df = None
    if inp.continent_of is not None:
        continent_df = aggregate_by_continent(inp.confirmed_wide, inp.deaths_wide, inp.continent_of, cfg)
    return AggregateOutput(global_df=global_df, continent_df=continent_df)
