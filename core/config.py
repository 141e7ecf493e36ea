from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class EngineConfig:
    # ---- Preconditions ----
    min_observations: int = 10
    seasonal_period: int = 7

    # ---- Stage A: differencing ----
    max_d: int = 2
    max_D: int = 1
    stationarity_alpha: float = 0.05
    seasonal_variance_ratio: float = 0.64
    kpss_min_length: int = 12
    strict_stationarity: bool = False

    # ---- Stage B: order search ----
    max_p: int = 5
    max_q: int = 5
    max_P: int = 2
    max_Q: int = 2
    max_fits: int = 50
    workers: int = 1
    evaluation_seed: Optional[int] = None

    # ---- Stage C: estimation ----
    max_iterations: int = 200
    tolerance: float = 1e-8
    sigma2_floor: float = 1e-10

    # ---- Stage D: intervals ----
    confidence: float = 0.95

    def __post_init__(self) -> None:
        if not 0.0 < self.confidence < 1.0:
            raise ValueError(f"confidence must be in (0, 1), got {self.confidence}")
        if self.max_fits < 1:
            raise ValueError("max_fits must be >= 1")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        for name in ("max_d", "max_D", "max_p", "max_q", "max_P", "max_Q"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")


@dataclass(frozen=True)
class AppConfig:
    # ---- Data ----
    id_cols: tuple[str, ...] = ("Province/State", "Country/Region", "Lat", "Long")
    country_col: str = "Country/Region"
    date_col: str = "date"
    confirmed_col: str = "confirmed"
    deaths_col: str = "deaths"
    unknown_continent: str = "Other"

    # ---- Forecast ----
    horizon: int = 14
    holdout: int = 14
    engine: EngineConfig = field(default_factory=EngineConfig)

    # ---- Storage ----
    sqlite_path: str = "forecast_history.sqlite3"


CFG = AppConfig()
