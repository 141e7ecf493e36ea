from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, date
from typing import Optional

from domain.entities import ForecastResult, ForecastRun
from domain.repositories import ForecastRepository


@dataclass(frozen=True)
class SaveRunInput:
    label: str
    series_name: str
    rows_count: int
    date_range_start: Optional[date]
    date_range_end: Optional[date]
    result: ForecastResult


def save_run_uc(repo: ForecastRepository, inp: SaveRunInput) -> int:
    r = inp.result
    run = ForecastRun(
        run_id=None,
        run_timestamp=datetime.now(),
        label=inp.label,
        series_name=inp.series_name,
        rows_count=int(inp.rows_count),
        date_range_start=inp.date_range_start,
        date_range_end=inp.date_range_end,
        horizon=len(r.steps),
        model_label=str(r.model.candidate) if r.model is not None else "naive",
        aicc=r.aicc,
        degraded=r.degraded,
        confidence=r.confidence,
    )
    run_id = repo.create_run(run)
    repo.add_steps(run_id, r.steps)
    return run_id
