import json
import logging
import os
import re
import sqlite3
from contextlib import asynccontextmanager

import aiosqlite

from weight_tracker import config, migrations
from weight_tracker.errors import StorageError, StoreOpenError


logger = logging.getLogger(__name__)

INDEX_PREFIX = "ix_"
_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _checked_name(name):
    if not _NAME_RE.match(name):
        raise ValueError(f"invalid collection or field name: {name!r}")
    return name


class Store:
    """Key-value collections over one SQLite file.

    Every collection is a table of ``(key, value)`` rows where ``value`` is a
    JSON document. Indexed fields are mirrored into ``ix_<field>`` columns so
    records can be scanned by field value without decoding the whole table.
    The schema generation lives in ``PRAGMA user_version``.
    """

    def __init__(self, conn, path):
        self.conn = conn
        self.path = path
        self._indexes = {}
        self._depth = 0

    async def _execute(self, sql, params=()):
        try:
            async with self.conn.execute(sql, params):
                pass
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    async def _fetchall(self, sql, params=()):
        try:
            async with self.conn.execute(sql, params) as cursor:
                return await cursor.fetchall()
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    async def load_catalog(self):
        self._indexes = {}
        rows = await self._fetchall(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        )
        for (name,) in rows:
            columns = await self._fetchall(f'PRAGMA table_info("{name}")')
            self._indexes[name] = tuple(
                column[1][len(INDEX_PREFIX):]
                for column in columns
                if column[1].startswith(INDEX_PREFIX)
            )

    async def read_generation(self):
        rows = await self._fetchall("PRAGMA user_version")
        return rows[0][0]

    async def write_generation(self, generation):
        await self._execute(f"PRAGMA user_version = {int(generation)}")

    @property
    def collections(self):
        return set(self._indexes)

    def has_collection(self, name):
        return name in self._indexes

    async def create_collection(self, name, indexes=()):
        name = _checked_name(name)
        if name in self._indexes:
            return
        index_columns = "".join(
            f', "{INDEX_PREFIX}{_checked_name(field)}" TEXT' for field in indexes
        )
        await self._execute(
            f'CREATE TABLE IF NOT EXISTS "{name}" '
            f"(key TEXT PRIMARY KEY, value TEXT NOT NULL{index_columns})"
        )
        for field in indexes:
            await self._execute(
                f'CREATE INDEX IF NOT EXISTS "{name}_by_{field}" '
                f'ON "{name}" ("{INDEX_PREFIX}{field}", key)'
            )
        self._indexes[name] = tuple(indexes)
        logger.debug("Created collection %s (indexes: %s)", name, ", ".join(indexes) or "-")

    def _require(self, collection):
        if collection not in self._indexes:
            raise StorageError(f"unknown collection: {collection}")
        return self._indexes[collection]

    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed operations atomically.

        Nested scopes join the outermost one; only the outermost scope commits
        or rolls back.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        await self._execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self
        except BaseException:
            try:
                async with self.conn.execute("ROLLBACK"):
                    pass
            except sqlite3.Error:
                logger.exception("Rollback failed for %s", self.path)
            # The catalog may include collections created inside the aborted scope.
            self._depth = 0
            try:
                await self.load_catalog()
            except StorageError:
                logger.exception("Reloading the catalog failed for %s", self.path)
            raise
        else:
            await self._execute("COMMIT")
        finally:
            self._depth = 0

    async def get(self, collection, key):
        self._require(collection)
        rows = await self._fetchall(f'SELECT value FROM "{collection}" WHERE key = ?', (key,))
        if not rows:
            return None
        return json.loads(rows[0][0])

    async def put(self, collection, key, value):
        indexes = self._require(collection)
        columns = ["key", "value"] + [f'"{INDEX_PREFIX}{field}"' for field in indexes]
        params = [key, json.dumps(value)] + [value.get(field) for field in indexes]
        placeholders = ", ".join("?" for _ in columns)
        await self._execute(
            f'INSERT OR REPLACE INTO "{collection}" ({", ".join(columns)}) VALUES ({placeholders})',
            params,
        )

    async def delete(self, collection, key):
        self._require(collection)
        await self._execute(f'DELETE FROM "{collection}" WHERE key = ?', (key,))

    async def clear(self, collection):
        self._require(collection)
        await self._execute(f'DELETE FROM "{collection}"')

    async def scan(self, collection, prefix="", reverse=False):
        """Yield ``(key, record)`` pairs in key order, one at a time.

        The iterator is lazy and single-pass: it walks one SQLite cursor and
        cannot be restarted.
        """
        self._require(collection)
        order = "DESC" if reverse else "ASC"
        sql = f'SELECT key, value FROM "{collection}" WHERE substr(key, 1, ?) = ? ORDER BY key {order}'
        async for key, value in self._iterate(sql, (len(prefix), prefix)):
            yield key, value

    async def scan_index(self, collection, field, value, reverse=False):
        if field not in self._require(collection):
            raise StorageError(f"{collection} has no index on {field}")
        order = "DESC" if reverse else "ASC"
        sql = (
            f'SELECT key, value FROM "{collection}" '
            f'WHERE "{INDEX_PREFIX}{field}" = ? ORDER BY key {order}'
        )
        async for key, record in self._iterate(sql, (value,)):
            yield key, record

    async def _iterate(self, sql, params):
        try:
            async with self.conn.execute(sql, params) as cursor:
                async for key, value in cursor:
                    yield key, json.loads(value)
        except sqlite3.Error as exc:
            raise StorageError(str(exc)) from exc

    async def close(self):
        await self.conn.close()


async def open_store(path=None, generation=config.CURRENT_GENERATION):
    path = path or config.DB_PATH
    if path != ":memory:":
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

    try:
        conn = await aiosqlite.connect(path, isolation_level=None)
    except (sqlite3.Error, OSError) as exc:
        raise StoreOpenError(f"could not open {path}: {exc}") from exc

    store = Store(conn, path)
    try:
        await store.load_catalog()
        await migrations.upgrade(store, generation)
    except StoreOpenError:
        await conn.close()
        raise
    except Exception as exc:
        await conn.close()
        raise StoreOpenError(f"could not open {path}: {exc}") from exc
    return store
