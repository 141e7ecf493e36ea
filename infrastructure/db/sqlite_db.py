from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from typing import Iterator


class SQLiteDB:
    def __init__(self, path: str, timeout: float = 5.0) -> None:
        self._path = path
        self._timeout = timeout

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        con = sqlite3.connect(self._path, timeout=self._timeout)
        con.row_factory = sqlite3.Row
        try:
            con.execute("PRAGMA foreign_keys = ON;")
            yield con
            con.commit()
        except sqlite3.Error:
            con.rollback()
            raise
        finally:
            con.close()
