from __future__ import annotations

from domain.entities import StoredForecast
from domain.repositories import ForecastRepository


def load_run_uc(repo: ForecastRepository, run_id: int) -> StoredForecast:
    return repo.load_run(run_id)
