from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from prediction_engine.config import sqlite_busy_timeout_ms
from prediction_engine.resilience.bulkheads import run_io
from prediction_engine.resilience.circuit_breaker import get_breaker


class KeyValueStore:
    """Minimal async string key-value contract the prediction cache writes through.

    Values are opaque strings (the cache stores JSON). Writes are
    last-write-wins per key; there is no compare-and-swap.
    """

    name = "kv"

    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    async def put(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def list_keys(self, prefix: str) -> list[str]:
        raise NotImplementedError


class MemoryKVStore(KeyValueStore):
    name = "memory_kv"

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(str(key))

    async def put(self, key: str, value: str) -> None:
        self._data[str(key)] = str(value)

    async def list_keys(self, prefix: str) -> list[str]:
        p = str(prefix)
        return sorted(k for k in self._data if k.startswith(p))


class SqliteKVStore(KeyValueStore):
    name = "sqlite_kv"

    def __init__(self, *, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._ensure_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path), timeout=3.0)
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        conn.execute(f"PRAGMA busy_timeout={int(sqlite_busy_timeout_ms())};")
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    kv_key TEXT PRIMARY KEY,
                    kv_value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    async def get(self, key: str) -> str | None:
        return await run_io(get_breaker(self.name).call, self._get_impl, key=str(key))

    def _get_impl(self, *, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT kv_value FROM kv_entries WHERE kv_key = ?", (key,)).fetchone()
            return str(row[0]) if row else None

    async def put(self, key: str, value: str) -> None:
        await run_io(get_breaker(self.name).call, self._put_impl, key=str(key), value=str(value))

    def _put_impl(self, *, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO kv_entries (kv_key, kv_value, updated_at) VALUES (?, ?, ?)",
                (key, value, now),
            )

    async def list_keys(self, prefix: str) -> list[str]:
        return await run_io(get_breaker(self.name).call, self._list_keys_impl, prefix=str(prefix))

    def _list_keys_impl(self, *, prefix: str) -> list[str]:
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT kv_key FROM kv_entries WHERE kv_key LIKE ? ESCAPE '\\' ORDER BY kv_key",
                (escaped + "%",),
            ).fetchall()
            return [str(r[0]) for r in rows]

    def quick_check(self) -> bool:
        with self._connect() as conn:
            row = conn.execute("PRAGMA quick_check;").fetchone()
            return bool(row and str(row[0]).strip().lower() == "ok")
