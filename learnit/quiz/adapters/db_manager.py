import os
import sqlite3
import threading
from typing import Any

from learnit.shared.telemetry import Telemetry, measure_time


class DatabaseManager:
    """
    Responsible for:
    1. Managing the SQLite connection lifecycle.
    2. Initializing the document table (DDL).
    3. Handling migrations.
    4. Ensuring pickle-safety for Streamlit Session State.
    """

    def __init__(self, db_path: str = "data/learnit.db") -> None:
        self.db_path = db_path
        self.telemetry = Telemetry("DatabaseManager")
        self._shared_connection: sqlite3.Connection | None = None
        # Serializes every statement issued through the shared connection
        self.lock = threading.RLock()

        self._ensure_db_exists()
        self._init_schema()
        self._migrate_schema()

    # --- SERIALIZATION LOGIC (Pickle Safety) ---
    def __getstate__(self) -> dict[str, Any]:
        """
        Called when Streamlit/Pickle saves the session.
        Connections and locks cannot be pickled.
        """
        state = self.__dict__.copy()
        state.pop("_shared_connection", None)
        state.pop("lock", None)
        return state

    def __setstate__(self, state: dict[str, Any]) -> None:
        """
        Called when Streamlit/Pickle restores the session.
        The connection is lazily re-created by get_connection().
        """
        self.__dict__.update(state)
        self._shared_connection = None
        self.lock = threading.RLock()
        # Note: If using ":memory:", data is lost here.

    def get_connection(self) -> sqlite3.Connection:
        """Returns the shared connection, reconnecting if necessary."""
        if self._shared_connection:
            try:
                self._shared_connection.execute("SELECT 1")
                return self._shared_connection
            except sqlite3.ProgrammingError:
                # Connection was closed externally
                self._shared_connection = None

        conn = sqlite3.connect(self.db_path, check_same_thread=False)

        # WAL lets readers in other processes proceed during writes
        if self.db_path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")

        self._shared_connection = conn
        return conn

    def close(self) -> None:
        if self._shared_connection:
            self._shared_connection.close()
            self._shared_connection = None

    def _ensure_db_exists(self) -> None:
        if self.db_path == ":memory:":
            return
        dir_name = os.path.dirname(self.db_path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)

    @measure_time("db_init_schema")
    def _init_schema(self) -> None:
        conn = self.get_connection()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS documents
                (
                    collection TEXT NOT NULL,
                    id         TEXT NOT NULL,
                    json_data  TEXT NOT NULL,
                    PRIMARY KEY (collection, id)
                )
                """
            )
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error("Schema Init Failed", e)
            raise

    def _migrate_schema(self) -> None:
        conn = self.get_connection()
        try:
            cursor = conn.cursor()

            cursor.execute("PRAGMA table_info(documents)")
            columns = [info[1] for info in cursor.fetchall()]

            # Migration: Add updated_at if missing
            if "updated_at" not in columns:
                self.telemetry.log_info("Migrating: Adding updated_at to documents")
                cursor.execute("ALTER TABLE documents ADD COLUMN updated_at DATETIME")

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_documents_collection "
                "ON documents (collection)"
            )
            conn.commit()
        except sqlite3.Error as e:
            self.telemetry.log_error("Schema migration failed", e)
