from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set

import numpy as np

from core.config import EngineConfig
from domain.entities import CandidateModel, FittedModel
from infrastructure.ml.arima import fit_candidate

logger = logging.getLogger(__name__)

FitFn = Callable[[np.ndarray, CandidateModel, EngineConfig], FittedModel]


@dataclass(frozen=True)
class SearchOutcome:
    best: Optional[FittedModel]
    evaluated: Dict[CandidateModel, FittedModel]

    @property
    def n_evaluated(self) -> int:
        return len(self.evaluated)


def _in_bounds(c: CandidateModel, cfg: EngineConfig) -> bool:
    if min(c.p, c.q, c.P, c.Q) < 0:
        return False
    if c.p > cfg.max_p or c.q > cfg.max_q:
        return False
    if c.s <= 1 and (c.P or c.Q):
        return False
    return c.P <= cfg.max_P and c.Q <= cfg.max_Q


def _make(p: int, q: int, P: int, Q: int, d: int, D: int, s: int, cfg: EngineConfig) -> CandidateModel:
    if s <= 1:
        P, Q = 0, 0
    return CandidateModel(
        p=min(p, cfg.max_p),
        d=d,
        q=min(q, cfg.max_q),
        P=min(P, cfg.max_P),
        D=D,
        Q=min(Q, cfg.max_Q),
        s=s if s > 1 else 1,
    )


def seed_candidates(d: int, D: int, s: int, cfg: EngineConfig) -> List[CandidateModel]:
    seeds = [(2, 2, 1, 1), (0, 0, 0, 0), (1, 0, 1, 0), (0, 1, 0, 1)]
    out: List[CandidateModel] = []
    for p, q, P, Q in seeds:
        c = _make(p, q, P, Q, d, D, s, cfg)
        if c not in out:
            out.append(c)
    return sorted(out)


def neighbours(c: CandidateModel, cfg: EngineConfig) -> List[CandidateModel]:
    moves = [
        (1, 0, 0, 0), (-1, 0, 0, 0),
        (0, 1, 0, 0), (0, -1, 0, 0),
        (1, 1, 0, 0), (-1, -1, 0, 0),
    ]
    if c.s > 1:
        moves += [
            (0, 0, 1, 0), (0, 0, -1, 0),
            (0, 0, 0, 1), (0, 0, 0, -1),
            (0, 0, 1, 1), (0, 0, -1, -1),
        ]
    out = set()
    for dp, dq, dP, dQ in moves:
        n = CandidateModel(
            p=c.p + dp, d=c.d, q=c.q + dq, P=c.P + dP, D=c.D, Q=c.Q + dQ, s=c.s
        )
        if _in_bounds(n, cfg):
            out.add(n)
    return sorted(out)


class OrderSearch:
    """Greedy stepwise search over (p, q, P, Q) for fixed differencing.

    The winner is the minimum of `CandidateModel.selection_key`, a total
    order over (score, parameter count, p, q, P, Q), so the outcome does not
    depend on the order in which candidates are fitted.
    """

    def __init__(self, cfg: EngineConfig, fit_fn: FitFn = fit_candidate) -> None:
        self._cfg = cfg
        self._fit_fn = fit_fn

    def _evaluate(self, w: np.ndarray, batch: List[CandidateModel]) -> Dict[CandidateModel, FittedModel]:
        cfg = self._cfg
        order = list(batch)
        if cfg.evaluation_seed is not None:
            rng = np.random.default_rng(cfg.evaluation_seed)
            order = [order[i] for i in rng.permutation(len(order))]

        if cfg.workers > 1 and len(order) > 1:
            with ThreadPoolExecutor(max_workers=cfg.workers) as pool:
                fitted = list(pool.map(lambda c: self._fit_fn(w, c, cfg), order))
        else:
            fitted = [self._fit_fn(w, c, cfg) for c in order]

        out = dict(zip(order, fitted))
        for c in order:
            logger.debug("%s aicc=%.4f", c, out[c].aicc)
        return out

    @staticmethod
    def _best(models: Iterable[FittedModel]) -> Optional[FittedModel]:
        viable = [m for m in models if m.is_viable]
        if not viable:
            return None
        return min(viable, key=lambda m: m.candidate.selection_key(m.aicc))

    def run(self, w: np.ndarray, d: int, D: int, s: int) -> SearchOutcome:
        cfg = self._cfg
        evaluated: Dict[CandidateModel, FittedModel] = {}
        visited: Set[CandidateModel] = set()

        def take(cands: List[CandidateModel]) -> List[CandidateModel]:
            fresh = [c for c in sorted(cands) if c not in visited]
            room = cfg.max_fits - len(evaluated)
            return fresh[: max(room, 0)]

        batch = take(seed_candidates(d, D, s, cfg))
        visited.update(batch)
        evaluated.update(self._evaluate(w, batch))
        best = self._best(evaluated.values())

        while best is not None and len(evaluated) < cfg.max_fits:
            batch = take(neighbours(best.candidate, cfg))
            if not batch:
                break
            visited.update(batch)
            evaluated.update(self._evaluate(w, batch))
            challenger = self._best(evaluated.values())
            if challenger is None or challenger.candidate == best.candidate:
                break
            best = challenger

        if best is not None:
            logger.info("Selected %s aicc=%.4f after %d fits", best.candidate, best.aicc, len(evaluated))
        else:
            logger.info("No viable candidate after %d fits", len(evaluated))
        return SearchOutcome(best=best, evaluated=evaluated)
