from __future__ import annotations

from domain.entities import ForecastRun
from domain.repositories import ForecastRepository


def list_runs_uc(repo: ForecastRepository, limit: int = 200) -> list[ForecastRun]:
    return repo.list_runs(limit=limit)
