from __future__ import annotations

from domain.repositories import ForecastRepository


def delete_run_uc(repo: ForecastRepository, run_id: int) -> None:
    if not repo.run_exists(run_id):
        raise KeyError(f"run_id={run_id} not found")
    repo.delete_run(run_id)
