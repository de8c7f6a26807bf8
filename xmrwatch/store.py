"""
DuckDB persistence for subscriber alert lists.

One row per chat in ``notifiers``; each currency column is a sorted
``DOUBLE[]`` (empty list allowed).
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Dict, Optional

import duckdb

from xmrwatch.alertset import AlertSet
from xmrwatch.errors import PersistenceError, StartupError
from xmrwatch.price import CURRENCIES

log = logging.getLogger(__name__)

MEMORY_DB = ":memory:"
CONNECT_RETRY_DELAY = 3.0


def _ensure_table(con: duckdb.DuckDBPyConnection) -> None:
    con.execute(
        """
        CREATE TABLE IF NOT EXISTS notifiers (
            chat_id BIGINT PRIMARY KEY,
            btc DOUBLE[],
            usd DOUBLE[],
            eur DOUBLE[],
            cny DOUBLE[]
        )
        """
    )


def connect(
    db_path: str,
    retries: int = 5,
    retry_delay: float = CONNECT_RETRY_DELAY,
) -> duckdb.DuckDBPyConnection:
    """Open ``db_path``; retried because the file may still be locked by a previous run."""
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    attempts = max(1, retries)
    last_exc: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            return duckdb.connect(db_path)
        except duckdb.Error as exc:
            last_exc = exc
            log.warning("failed to open database %s (try %s/%s): %s", db_path, attempt, attempts, exc)
            if attempt < attempts:
                time.sleep(retry_delay)
    raise StartupError(f"failed to connect to database {db_path}: {last_exc}")


class AlertStore:
    """Key-value store of ``chat_id -> AlertSet`` on top of one DuckDB connection."""

    _COLUMNS = ", ".join(str(c) for c in CURRENCIES)

    def __init__(self, con: duckdb.DuckDBPyConnection):
        self._con = con
        self._lock = threading.Lock()
        try:
            with self._lock:
                _ensure_table(con)
        except duckdb.Error as exc:
            raise StartupError(f"failed to migrate database: {exc}") from exc

    @classmethod
    def open(cls, db_path: str, retries: int = 5, retry_delay: float = CONNECT_RETRY_DELAY) -> "AlertStore":
        return cls(connect(db_path, retries=retries, retry_delay=retry_delay))

    def load_all(self) -> Dict[int, AlertSet]:
        with self._lock:
            rows = self._con.execute(
                f"SELECT chat_id, {self._COLUMNS} FROM notifiers ORDER BY chat_id"
            ).fetchall()
        result: Dict[int, AlertSet] = {}
        for row in rows:
            chat_id, *lists = row
            record = {str(c): values for c, values in zip(CURRENCIES, lists)}
            result[int(chat_id)] = AlertSet.from_record(record)
        return result

    def load(self, chat_id: int) -> Optional[AlertSet]:
        with self._lock:
            row = self._con.execute(
                f"SELECT {self._COLUMNS} FROM notifiers WHERE chat_id = ?", [int(chat_id)]
            ).fetchone()
        if row is None:
            return None
        return AlertSet.from_record({str(c): values for c, values in zip(CURRENCIES, row)})

    def save(self, chat_id: int, alert_set: AlertSet) -> None:
        """Write the full record for ``chat_id``; raises :class:`PersistenceError`."""
        record = alert_set.to_record()
        params = [int(chat_id)] + [record[str(c)] for c in CURRENCIES]
        casts = ", ".join("CAST(? AS DOUBLE[])" for _ in CURRENCIES)
        try:
            with self._lock:
                self._con.execute(
                    f"INSERT OR REPLACE INTO notifiers (chat_id, {self._COLUMNS}) VALUES (?, {casts})",
                    params,
                )
        except duckdb.Error as exc:
            log.error("failed to save alerts for chat %s: %s", chat_id, exc)
            raise PersistenceError() from exc

    def count(self) -> int:
        with self._lock:
            return int(self._con.execute("SELECT COUNT(*) FROM notifiers").fetchone()[0])

    def close(self) -> None:
        with self._lock:
            self._con.close()


__all__ = ["AlertStore", "connect", "MEMORY_DB"]
