from typing import Any, cast

from postgrest.types import CountMethod

from learnit.config import AppConfig
from learnit.quiz.adapters.listeners import ListenerRegistry, SnapshotPoller
from learnit.quiz.adapters.paths import deep_merge, new_doc_id, split_path
from learnit.quiz.domain.errors import BackendError, NotFoundError
from learnit.quiz.domain.ports import (
    CollectionCallback,
    DocumentCallback,
    DocumentData,
    IDocumentStore,
    Subscription,
)
from learnit.shared.telemetry import Telemetry, measure_time
from supabase import Client, create_client

TABLE = "documents"

def json_column(field_path: str, as_text: bool) -> str:
    """'players.u1.score' -> 'data->players->u1->>score' (PostgREST syntax)."""
    parts = split_path(field_path)
    arrow = "->>" if as_text else "->"
    if len(parts) == 1:
        return f"data{arrow}{parts[0]}"
    return "data->" + "->".join(parts[:-1]) + arrow + parts[-1]

def filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

class SupabaseDocumentStore(IDocumentStore):
    """
    Hosted document store on a single Postgres table (see
    data/supabase_schema.sql). Dotted-path merges and increments run as
    RPCs so they are atomic on the server. Changes made by other processes
    reach subscribers through a polling thread.
    """

    def __init__(
        self,
        url: str | None = None,
        key: str | None = None,
        client: Client | None = None,
        poll_interval_s: float | None = None,
    ) -> None:
        self.telemetry = Telemetry("SupabaseDocumentStore")
        if client is not None:
            self.client = client
        else:
            try:
                self.client = create_client(cast(str, url), cast(str, key))
            except Exception as e:
                self.telemetry.log_error("Failed to initialize Supabase client", e)
                raise
        self.listeners = ListenerRegistry()
        self.poller = SnapshotPoller(
            self.listeners,
            poll_interval_s if poll_interval_s is not None else AppConfig.poll_interval_s(),
        )

    def close(self) -> None:
        self.poller.stop()

    # --- Reads ---

    def is_empty(self, collection: str) -> bool:
        """Helper for the Seeder. An unreachable backend counts as non-empty."""
        try:
            response = (
                self.client.table(TABLE)
                .select("id", count=cast(CountMethod, "exact"))
                .eq("collection", collection)
                .limit(1)
                .execute()
            )
            return (response.count or 0) == 0
        except Exception as e:
            self.telemetry.log_error("is_empty check failed", e)
            return False

    @measure_time("sb_get")
    def get(self, collection: str, doc_id: str) -> DocumentData | None:
        try:
            response = (
                self.client.table(TABLE)
                .select("id, data")
                .eq("collection", collection)
                .eq("id", doc_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            self.telemetry.log_error(f"get {collection}/{doc_id} failed", e)
            raise BackendError("get", e) from e

        rows = cast(list[dict[str, Any]], response.data)
        if not rows:
            return None
        return self._to_document(rows[0])

    @measure_time("sb_query")
    def query(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        where: dict[str, Any] | None = None,
    ) -> list[DocumentData]:
        try:
            request = self.client.table(TABLE).select("id, data").eq("collection", collection)
            for field_path, value in (where or {}).items():
                request = request.eq(json_column(field_path, as_text=True), filter_value(value))
            if order_by:
                request = request.order(json_column(order_by, as_text=False), desc=descending)
                # Insertion order breaks ties between equal timestamps
                request = request.order("seq", desc=descending)
            else:
                request = request.order("seq")
            if limit is not None:
                request = request.limit(limit)
            response = request.execute()
        except Exception as e:
            self.telemetry.log_error(f"query {collection} failed", e)
            raise BackendError("query", e) from e

        rows = cast(list[dict[str, Any]], response.data)
        return [self._to_document(row) for row in rows]

    @staticmethod
    def _to_document(row: dict[str, Any]) -> DocumentData:
        data = dict(row.get("data") or {})
        data["id"] = str(row["id"])
        return data

    # --- Writes ---

    @measure_time("sb_add")
    def add(self, collection: str, data: DocumentData) -> str:
        doc_id = new_doc_id()
        payload = {k: v for k, v in data.items() if k != "id"}
        try:
            self.client.table(TABLE).insert(
                {"collection": collection, "id": doc_id, "data": payload}
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"add {collection} failed", e)
            raise BackendError("add", e) from e
        self.listeners.refresh(collection)
        return doc_id

    @measure_time("sb_set")
    def set(
        self, collection: str, doc_id: str, data: DocumentData, merge: bool = False
    ) -> None:
        payload = {k: v for k, v in data.items() if k != "id"}
        if merge:
            # Read-modify-write: last writer wins on overlapping keys
            existing = self.get(collection, doc_id)
            if existing is not None:
                existing.pop("id", None)
                deep_merge(existing, payload)
                payload = existing
        try:
            self.client.table(TABLE).upsert(
                {"collection": collection, "id": doc_id, "data": payload}
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"set {collection}/{doc_id} failed", e)
            raise BackendError("set", e) from e
        self.listeners.refresh(collection)

    @measure_time("sb_update")
    def update(self, collection: str, doc_id: str, fields: DocumentData) -> None:
        for path in fields:
            split_path(path)
        try:
            response = self.client.rpc(
                "merge_document",
                {"p_collection": collection, "p_id": doc_id, "p_fields": fields},
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"update {collection}/{doc_id} failed", e)
            raise BackendError("update", e) from e
        if response.data is False:
            raise NotFoundError(collection, doc_id)
        self.listeners.refresh(collection)

    @measure_time("sb_increment")
    def increment(
        self, collection: str, doc_id: str, field_path: str, amount: int = 1
    ) -> None:
        split_path(field_path)
        try:
            response = self.client.rpc(
                "increment_document_field",
                {
                    "p_collection": collection,
                    "p_id": doc_id,
                    "p_path": field_path,
                    "p_amount": amount,
                },
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"increment {collection}/{doc_id} failed", e)
            raise BackendError("increment", e) from e
        if response.data is False:
            raise NotFoundError(collection, doc_id)
        self.listeners.refresh(collection)

    @measure_time("sb_apply_if")
    def apply_if(
        self,
        collection: str,
        doc_id: str,
        expected: DocumentData,
        fields: DocumentData,
        increments: dict[str, int] | None = None,
    ) -> bool:
        for path in [*expected, *fields, *(increments or {})]:
            split_path(path)
        try:
            response = self.client.rpc(
                "apply_document_if",
                {
                    "p_collection": collection,
                    "p_id": doc_id,
                    "p_expected": expected,
                    "p_fields": fields,
                    "p_increments": increments or {},
                },
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"apply_if {collection}/{doc_id} failed", e)
            raise BackendError("apply_if", e) from e

        if response.data == "missing":
            raise NotFoundError(collection, doc_id)
        if response.data != "applied":
            return False
        self.listeners.refresh(collection)
        return True

    @measure_time("sb_delete")
    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self.client.table(TABLE).delete().eq("collection", collection).eq(
                "id", doc_id
            ).execute()
        except Exception as e:
            self.telemetry.log_error(f"delete {collection}/{doc_id} failed", e)
            raise BackendError("delete", e) from e
        self.listeners.refresh(collection)

    # --- Subscriptions ---

    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Subscription:
        subscription = self.listeners.register(
            collection, callback, lambda: self.get(collection, doc_id), doc_id=doc_id
        )
        self.poller.start()
        return subscription

    def watch_collection(
        self,
        collection: str,
        callback: CollectionCallback,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> Subscription:
        subscription = self.listeners.register(
            collection,
            callback,
            lambda: self.query(collection, order_by, descending, limit),
        )
        self.poller.start()
        return subscription
