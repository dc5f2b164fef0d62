"""DuckDB对象存储实现."""

import json
import time
from pathlib import Path
from typing import Any

import duckdb
from duckdb import DuckDBPyConnection

from pricetrack.core.exceptions import PersistenceUnavailableError

from .base import ObjectStore


class DuckDBObjectStore(ObjectStore):
    """基于DuckDB的持久化对象存储."""

    backend_name = "duckdb"

    def __init__(self, db_path: str = ":memory:"):
        """初始化DuckDB存储."""
        self.db_path = db_path
        self._conn: DuckDBPyConnection | None = None
        self._init_database()

    def _init_database(self) -> None:
        """初始化数据库表结构."""
        database = self.db_path
        if database != ":memory:":
            path = Path(database).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            database = str(path)
        try:
            self._conn = duckdb.connect(database)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS objects (
                    key VARCHAR PRIMARY KEY,
                    value VARCHAR,
                    written_at DOUBLE
                )
            """)
        except duckdb.Error as exc:
            raise PersistenceUnavailableError(
                f"cannot open DuckDB store: {exc}", operation="connect", backend=self.backend_name
            ) from exc

    def _connection(self, operation: str, key: str) -> DuckDBPyConnection:
        if self._conn is None:
            raise PersistenceUnavailableError(
                "DuckDB store is closed", operation=operation, key=key, backend=self.backend_name
            )
        return self._conn

    async def write(self, key: str, value: Any) -> None:
        conn = self._connection("write", key)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO objects (key, value, written_at) VALUES (?, ?, ?)",
                [key, json.dumps(value, default=str), time.time()],
            )
        except duckdb.Error as exc:
            raise PersistenceUnavailableError(
                f"DuckDB write failed: {exc}", operation="write", key=key, backend=self.backend_name
            ) from exc

    async def read_latest(self, prefix: str) -> Any | None:
        conn = self._connection("read", prefix)
        try:
            row = conn.execute(
                """
                SELECT value FROM objects
                WHERE starts_with(key, ?)
                ORDER BY written_at DESC, key
                LIMIT 1
                """,
                [prefix],
            ).fetchone()
        except duckdb.Error as exc:
            raise PersistenceUnavailableError(
                f"DuckDB read failed: {exc}", operation="read", key=prefix, backend=self.backend_name
            ) from exc
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as exc:
            raise PersistenceUnavailableError(
                "stored object is not valid JSON", operation="read", key=prefix, backend=self.backend_name
            ) from exc

    def is_connected(self) -> bool:
        """检查数据库连接是否处于活动状态."""
        return self._conn is not None

    async def close(self) -> None:
        """关闭数据库连接."""
        if self._conn:
            self._conn.close()
            self._conn = None


__all__ = ["DuckDBObjectStore"]
