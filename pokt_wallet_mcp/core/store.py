"""Key/value wallet store with change notifications.

Two backends share one contract: an in-memory store for tests and
ephemeral servers, and a SQLite store (aiosqlite) that keeps an in-memory
mirror so synchronous reads stay available.
"""

import asyncio
import copy
import inspect
import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import aiosqlite
import structlog

from .exceptions import StoreError

logger = structlog.get_logger()


@dataclass(frozen=True)
class StoreChange:
    """Notification emitted after a key is written or removed (value is None on removal)."""

    key: str
    value: Any


StoreListener = Callable[[StoreChange], Any]


class Store(Protocol):
    """Durable key -> value persistence used by the wallet core."""

    async def get(self, key: str, default: Any = None) -> Any: ...

    def get_sync(self, key: str, default: Any = None) -> Any: ...

    async def set(self, key: str, value: Any) -> bool: ...

    async def remove(self, key: str) -> None: ...

    def subscribe(self, listener: StoreListener) -> Callable[[], None]: ...


def is_storable(value: Any) -> bool:
    """Empty strings and None are never written."""
    return value is not None and value != ""


class _NotifyingStore:
    """Shared listener bookkeeping and the in-memory mirror."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._listeners: list[StoreListener] = []
        self._pending: set[asyncio.Task] = set()
        self.logger = logger.bind(component="store", backend=type(self).__name__)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_sync(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def _notify(self, key: str, value: Any) -> None:
        """Deliver a change to every listener without waiting on any of them."""
        change = StoreChange(key=key, value=copy.deepcopy(value))
        for listener in list(self._listeners):
            try:
                result = listener(change)
            except Exception as e:
                self.logger.warning("Store listener failed", key=key, error=str(e))
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.warning("Async store listener failed", error=str(task.exception()))


class MemoryStore(_NotifyingStore):
    """Process-local store. Contents are lost on exit."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__()
        if initial:
            self._data.update(copy.deepcopy(initial))

    async def get(self, key: str, default: Any = None) -> Any:
        return self.get_sync(key, default)

    async def set(self, key: str, value: Any) -> bool:
        if not is_storable(value):
            self.logger.warning("Refusing to store empty value", key=key)
            return False
        self._data[key] = copy.deepcopy(value)
        self._notify(key, value)
        return True

    async def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._notify(key, None)


class SqliteStore(_NotifyingStore):
    """SQLite-backed store. Values are JSON encoded in a single kv table."""

    def __init__(self, db_path: Path | str) -> None:
        super().__init__()
        self.db_path = Path(db_path)
        self._initialized = False

    async def initialize(self) -> None:
        """Create the schema and load every row into the mirror."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,  -- JSON encoded
                        updated_at REAL NOT NULL
                    )
                """)
                await db.commit()
                cursor = await db.execute("SELECT key, value FROM kv")
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to open wallet store at {self.db_path}: {e}") from e

        self._data.clear()
        for key, raw in rows:
            try:
                self._data[key] = json.loads(raw)
            except json.JSONDecodeError as e:
                self.logger.warning("Skipping undecodable store row", key=key, error=str(e))
        self._initialized = True
        self.logger.info("Wallet store initialized", db_path=str(self.db_path), keys=len(self._data))

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    def get_sync(self, key: str, default: Any = None) -> Any:
        if not self._initialized:
            raise StoreError("SqliteStore.initialize() must be awaited before synchronous reads")
        return super().get_sync(key, default)

    async def get(self, key: str, default: Any = None) -> Any:
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute("SELECT value FROM kv WHERE key = ?", (key,))
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to read '{key}': {e}") from e

        if row is None:
            self._data.pop(key, None)
            return default
        try:
            value = json.loads(row[0])
        except json.JSONDecodeError as e:
            self.logger.warning("Stored value is not valid JSON", key=key, error=str(e))
            return default
        self._data[key] = value
        return copy.deepcopy(value)

    async def set(self, key: str, value: Any) -> bool:
        if not is_storable(value):
            self.logger.warning("Refusing to store empty value", key=key)
            return False
        await self._ensure_initialized()
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for '{key}' is not JSON serializable: {e}") from e
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    "INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, encoded, time.time()),
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to write '{key}': {e}") from e

        self._data[key] = json.loads(encoded)
        self._notify(key, value)
        return True

    async def remove(self, key: str) -> None:
        await self._ensure_initialized()
        try:
            async with aiosqlite.connect(self.db_path) as db:
                cursor = await db.execute("DELETE FROM kv WHERE key = ?", (key,))
                await db.commit()
                removed = cursor.rowcount
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to remove '{key}': {e}") from e

        self._data.pop(key, None)
        if removed:
            self._notify(key, None)
