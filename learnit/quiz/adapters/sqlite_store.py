import json
import sqlite3
from typing import Any

from learnit.quiz.adapters.db_manager import DatabaseManager
from learnit.quiz.adapters.listeners import ListenerRegistry
from learnit.quiz.adapters.paths import deep_merge, get_path, new_doc_id, set_path
from learnit.quiz.domain.errors import BackendError, NotFoundError
from learnit.quiz.domain.ports import (
    CollectionCallback,
    DocumentCallback,
    DocumentData,
    IDocumentStore,
    Subscription,
)
from learnit.shared.telemetry import Telemetry, measure_time


class SQLiteDocumentStore(IDocumentStore):
    """
    Local document store: one row per document, JSON payload.
    Subscribers in this process are notified synchronously after each commit.
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.telemetry = Telemetry("SQLiteDocumentStore")
        self.db_manager = db_manager
        self.listeners = ListenerRegistry()

    def _get_connection(self) -> sqlite3.Connection:
        return self.db_manager.get_connection()

    def is_empty(self, collection: str) -> bool:
        """Helper for the Seeder."""
        with self.db_manager.lock:
            conn = self._get_connection()
            row = conn.execute(
                "SELECT count(*) FROM documents WHERE collection = ?", (collection,)
            ).fetchone()
        return (row[0] if row else 0) == 0

    # --- Reads ---

    def _load(self, conn: sqlite3.Connection, collection: str, doc_id: str) -> DocumentData | None:
        row = conn.execute(
            "SELECT json_data FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        ).fetchone()
        if not row:
            return None
        data: DocumentData = json.loads(row[0])
        data["id"] = doc_id
        return data

    def get(self, collection: str, doc_id: str) -> DocumentData | None:
        try:
            with self.db_manager.lock:
                return self._load(self._get_connection(), collection, doc_id)
        except sqlite3.Error as e:
            self.telemetry.log_error(f"get {collection}/{doc_id} failed", e)
            raise BackendError("get", e) from e

    @measure_time("sqlite_query")
    def query(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        where: dict[str, Any] | None = None,
    ) -> list[DocumentData]:
        sql = "SELECT id, json_data FROM documents WHERE collection = ?"
        params: list[Any] = [collection]

        for field_path, value in (where or {}).items():
            sql += " AND json_extract(json_data, ?) = ?"
            params.extend([f"$.{field_path}", value])

        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(json_data, ?) {direction}, rowid {direction}"
            params.append(f"$.{order_by}")
        else:
            sql += " ORDER BY rowid"

        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        try:
            with self.db_manager.lock:
                rows = self._get_connection().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"query {collection} failed", e)
            raise BackendError("query", e) from e

        results = []
        for doc_id, raw in rows:
            data = json.loads(raw)
            data["id"] = doc_id
            results.append(data)
        return results

    # --- Writes ---

    def _write(self, conn: sqlite3.Connection, collection: str, doc_id: str, data: DocumentData) -> None:
        payload = {k: v for k, v in data.items() if k != "id"}
        conn.execute(
            """
            INSERT INTO documents (collection, id, json_data, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(collection, id) DO UPDATE SET json_data  = excluded.json_data,
                                                      updated_at = CURRENT_TIMESTAMP
            """,
            (collection, doc_id, json.dumps(payload)),
        )

    @measure_time("sqlite_add")
    def add(self, collection: str, data: DocumentData) -> str:
        doc_id = new_doc_id()
        self.set(collection, doc_id, data)
        return doc_id

    def set(
        self, collection: str, doc_id: str, data: DocumentData, merge: bool = False
    ) -> None:
        try:
            with self.db_manager.lock:
                conn = self._get_connection()
                existing = self._load(conn, collection, doc_id) if merge else None
                if existing is not None:
                    deep_merge(existing, data)
                    data = existing
                self._write(conn, collection, doc_id, data)
                conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"set {collection}/{doc_id} failed", e)
            raise BackendError("set", e) from e
        self.listeners.refresh(collection)

    @measure_time("sqlite_update")
    def update(self, collection: str, doc_id: str, fields: DocumentData) -> None:
        try:
            with self.db_manager.lock:
                conn = self._get_connection()
                current = self._load(conn, collection, doc_id)
                if current is None:
                    raise NotFoundError(collection, doc_id)
                for path, value in fields.items():
                    set_path(current, path, value)
                self._write(conn, collection, doc_id, current)
                conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"update {collection}/{doc_id} failed", e)
            raise BackendError("update", e) from e
        self.listeners.refresh(collection)

    @measure_time("sqlite_increment")
    def increment(
        self, collection: str, doc_id: str, field_path: str, amount: int = 1
    ) -> None:
        try:
            with self.db_manager.lock:
                conn = self._get_connection()
                current = self._load(conn, collection, doc_id)
                if current is None:
                    raise NotFoundError(collection, doc_id)
                value = get_path(current, field_path, 0) or 0
                set_path(current, field_path, value + amount)
                self._write(conn, collection, doc_id, current)
                conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"increment {collection}/{doc_id} failed", e)
            raise BackendError("increment", e) from e
        self.listeners.refresh(collection)

    @measure_time("sqlite_apply_if")
    def apply_if(
        self,
        collection: str,
        doc_id: str,
        expected: DocumentData,
        fields: DocumentData,
        increments: dict[str, int] | None = None,
    ) -> bool:
        try:
            with self.db_manager.lock:
                conn = self._get_connection()
                current = self._load(conn, collection, doc_id)
                if current is None:
                    raise NotFoundError(collection, doc_id)
                for path, value in expected.items():
                    if get_path(current, path) != value:
                        return False

                for path, value in fields.items():
                    set_path(current, path, value)
                for path, amount in (increments or {}).items():
                    set_path(current, path, (get_path(current, path, 0) or 0) + amount)
                self._write(conn, collection, doc_id, current)
                conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"apply_if {collection}/{doc_id} failed", e)
            raise BackendError("apply_if", e) from e
        self.listeners.refresh(collection)
        return True

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            with self.db_manager.lock:
                conn = self._get_connection()
                conn.execute(
                    "DELETE FROM documents WHERE collection = ? AND id = ?",
                    (collection, doc_id),
                )
                conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error(f"delete {collection}/{doc_id} failed", e)
            raise BackendError("delete", e) from e
        self.listeners.refresh(collection)

    # --- Subscriptions ---

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Subscription:
        return self.listeners.register(
            collection, callback, lambda: self.get(collection, doc_id), doc_id=doc_id
        )

    def watch_collection(
        self,
        collection: str,
        callback: CollectionCallback,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> Subscription:
        return self.listeners.register(
            collection,
            callback,
            lambda: self.query(collection, order_by, descending, limit),
        )
