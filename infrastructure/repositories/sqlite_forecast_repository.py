from __future__ import annotations

import sqlite3
from datetime import datetime, date
from typing import List, Optional, Sequence

from domain.entities import ForecastRun, ForecastStep, StoredForecast
from domain.repositories import ForecastRepository
from infrastructure.db.sqlite_db import SQLiteDB


def _to_date(v: Optional[str]) -> Optional[date]:
    return date.fromisoformat(v) if v else None


def _row_to_run(r: sqlite3.Row) -> ForecastRun:
    return ForecastRun(
        run_id=int(r["run_id"]),
        run_timestamp=datetime.fromisoformat(r["run_timestamp"]),
        label=str(r["label"] or ""),
        series_name=str(r["series_name"]),
        rows_count=int(r["rows_count"]),
        date_range_start=_to_date(r["date_range_start"]),
        date_range_end=_to_date(r["date_range_end"]),
        horizon=int(r["horizon"]),
        model_label=str(r["model_label"]),
        aicc=float(r["aicc"]) if r["aicc"] is not None else None,
        degraded=bool(r["degraded"]),
        confidence=float(r["confidence"]),
    )


_RUN_COLUMNS = """
    run_id, run_timestamp, label, series_name, rows_count,
    date_range_start, date_range_end, horizon,
    model_label, aicc, degraded, confidence
"""


class SQLiteForecastRepository(ForecastRepository):
    def __init__(self, db: SQLiteDB) -> None:
        self._db = db

    def init_schema(self) -> None:
        with self._db.connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS forecast_run (
                    run_id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_timestamp TEXT NOT NULL,

                    label TEXT NOT NULL DEFAULT '',
                    series_name TEXT NOT NULL,
                    rows_count INTEGER NOT NULL,
                    date_range_start TEXT,
                    date_range_end TEXT,
                    horizon INTEGER NOT NULL,

                    model_label TEXT NOT NULL,
                    aicc REAL,
                    degraded INTEGER NOT NULL DEFAULT 0,
                    confidence REAL NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS forecast_step (
                    run_id INTEGER NOT NULL,
                    step INTEGER NOT NULL,
                    point REAL NOT NULL,
                    lower REAL NOT NULL,
                    upper REAL NOT NULL,
                    PRIMARY KEY (run_id, step),
                    FOREIGN KEY(run_id) REFERENCES forecast_run(run_id) ON DELETE CASCADE
                );
                """
            )

    def create_run(self, run: ForecastRun) -> int:
        with self._db.connect() as con:
            cur = con.execute(
                """
                INSERT INTO forecast_run (
                    run_timestamp, label, series_name, rows_count,
                    date_range_start, date_range_end, horizon,
                    model_label, aicc, degraded, confidence
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    run.run_timestamp.isoformat(timespec="seconds"),
                    run.label,
                    run.series_name,
                    int(run.rows_count),
                    run.date_range_start.isoformat() if run.date_range_start else None,
                    run.date_range_end.isoformat() if run.date_range_end else None,
                    int(run.horizon),
                    run.model_label,
                    float(run.aicc) if run.aicc is not None else None,
                    int(run.degraded),
                    float(run.confidence),
                ),
            )
            return int(cur.lastrowid)

    def add_steps(self, run_id: int, steps: Sequence[ForecastStep]) -> None:
        with self._db.connect() as con:
            con.executemany(
                "INSERT INTO forecast_step (run_id, step, point, lower, upper) VALUES (?, ?, ?, ?, ?)",
                [(int(run_id), int(s.step), float(s.point), float(s.lower), float(s.upper)) for s in steps],
            )

    def list_runs(self, limit: int = 200) -> List[ForecastRun]:
        with self._db.connect() as con:
            rows = con.execute(
                f"""
                SELECT {_RUN_COLUMNS}
                FROM forecast_run
                ORDER BY run_timestamp DESC, run_id DESC
                LIMIT ?
                """,
                (int(limit),),
            ).fetchall()
        return [_row_to_run(r) for r in rows]

    def load_run(self, run_id: int) -> StoredForecast:
        with self._db.connect() as con:
            r = con.execute(
                f"SELECT {_RUN_COLUMNS} FROM forecast_run WHERE run_id = ?",
                (int(run_id),),
            ).fetchone()
            if r is None:
                raise KeyError(f"run_id={run_id} not found")

            rows = con.execute(
                """
                SELECT step, point, lower, upper
                FROM forecast_step
                WHERE run_id = ?
                ORDER BY step ASC
                """,
                (int(run_id),),
            ).fetchall()

        steps = [
            ForecastStep(step=int(s["step"]), point=float(s["point"]), lower=float(s["lower"]), upper=float(s["upper"]))
            for s in rows
        ]
        return StoredForecast(run=_row_to_run(r), steps=steps)

    def delete_run(self, run_id: int) -> None:
        with self._db.connect() as con:
            con.execute("DELETE FROM forecast_run WHERE run_id = ?", (int(run_id),))

    def run_exists(self, run_id: int) -> bool:
        with self._db.connect() as con:
            row = con.execute(
                "SELECT 1 FROM forecast_run WHERE run_id = ? LIMIT 1",
                (int(run_id),),
            ).fetchone()
        return row is not None
