from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence

from domain.entities import ForecastRun, ForecastStep, StoredForecast


class ForecastRepository(ABC):
    @abstractmethod
    def init_schema(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_run(self, run: ForecastRun) -> int:
        raise NotImplementedError

    @abstractmethod
    def add_steps(self, run_id: int, steps: Sequence[ForecastStep]) -> None:
        raise NotImplementedError

    @abstractmethod
    def list_runs(self, limit: int = 200) -> List[ForecastRun]:
        raise NotImplementedError

    @abstractmethod
    def load_run(self, run_id: int) -> StoredForecast:
        raise NotImplementedError

    @abstractmethod
    def delete_run(self, run_id: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def run_exists(self, run_id: int) -> bool:
        raise NotImplementedError
