from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, date
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class ObservedSeries:
    """Ordered numeric observations on a regular daily index."""

    values: Tuple[float, ...]
    dates: Optional[Tuple[date, ...]] = None
    seasonal_period: int = 7
    name: str = "confirmed"

    @classmethod
    def from_values(
        cls,
        values: Sequence[float],
        seasonal_period: int = 7,
        name: str = "confirmed",
    ) -> "ObservedSeries":
        return cls(values=tuple(float(v) for v in values), seasonal_period=seasonal_period, name=name)

    @classmethod
    def from_pandas(cls, s: pd.Series, seasonal_period: int = 7) -> "ObservedSeries":
        idx = pd.DatetimeIndex(s.index)
        return cls(
            values=tuple(float(v) for v in s.to_numpy(dtype=float)),
            dates=tuple(ts.date() for ts in idx),
            seasonal_period=seasonal_period,
            name=str(s.name) if s.name is not None else "confirmed",
        )

    def __len__(self) -> int:
        return len(self.values)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.values, dtype=float)

    @property
    def last_date(self) -> Optional[date]:
        return self.dates[-1] if self.dates else None


@dataclass(frozen=True, order=True)
class CandidateModel:
    p: int
    d: int
    q: int
    P: int = 0
    D: int = 0
    Q: int = 0
    s: int = 1

    @property
    def order(self) -> Tuple[int, int, int]:
        return (self.p, self.d, self.q)

    @property
    def seasonal_order(self) -> Tuple[int, int, int, int]:
        return (self.P, self.D, self.Q, self.s)

    @property
    def n_params(self) -> int:
        return self.p + self.q + self.P + self.Q

    @property
    def has_constant(self) -> bool:
        return self.d + self.D <= 1

    def selection_key(self, score: float) -> Tuple[float, int, int, int, int, int]:
        return (score, self.n_params, self.p, self.q, self.P, self.Q)

    def __str__(self) -> str:
        if self.s > 1:
            return f"ARIMA({self.p},{self.d},{self.q})({self.P},{self.D},{self.Q})[{self.s}]"
        return f"ARIMA({self.p},{self.d},{self.q})"


@dataclass(frozen=True)
class FittedModel:
    candidate: CandidateModel
    ar: Tuple[float, ...]
    ma: Tuple[float, ...]
    seasonal_ar: Tuple[float, ...]
    seasonal_ma: Tuple[float, ...]
    constant: float
    sigma2: float
    aicc: float
    n_obs: int
    converged: bool
    residuals: Tuple[float, ...] = field(default=(), repr=False)

    @property
    def is_viable(self) -> bool:
        return self.converged and bool(np.isfinite(self.aicc))


@dataclass(frozen=True)
class ForecastStep:
    step: int
    point: float
    lower: float
    upper: float


@dataclass(frozen=True)
class ForecastResult:
    steps: Tuple[ForecastStep, ...]
    model: Optional[FittedModel]
    degraded: bool
    confidence: float
    candidates_evaluated: int = 0
    start_date: Optional[date] = None

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def order(self) -> Optional[Tuple[int, int, int]]:
        return self.model.candidate.order if self.model is not None else None

    @property
    def seasonal_order(self) -> Optional[Tuple[int, int, int, int]]:
        return self.model.candidate.seasonal_order if self.model is not None else None

    @property
    def aicc(self) -> Optional[float]:
        return self.model.aicc if self.model is not None else None

    @property
    def points(self) -> List[float]:
        return [s.point for s in self.steps]

    def dates_iso(self) -> List[str]:
        if self.start_date is None:
            return []
        return [
            (pd.Timestamp(self.start_date) + pd.Timedelta(days=s.step)).date().isoformat()
            for s in self.steps
        ]

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            [(s.step, s.point, s.lower, s.upper) for s in self.steps],
            columns=["step", "point", "lower", "upper"],
        )
        if self.start_date is not None:
            df.insert(1, "date", pd.to_datetime(self.dates_iso()))
        return df


@dataclass(frozen=True)
class ForecastRun:
    run_id: Optional[int]
    run_timestamp: datetime

    label: str
    series_name: str
    rows_count: int
    date_range_start: Optional[date]
    date_range_end: Optional[date]
    horizon: int

    model_label: str
    aicc: Optional[float]
    degraded: bool
    confidence: float


@dataclass(frozen=True)
class StoredForecast:
    run: ForecastRun
    steps: List[ForecastStep]
