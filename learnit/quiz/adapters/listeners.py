import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from learnit.quiz.domain.ports import Subscription
from learnit.shared.telemetry import Telemetry

_UNSET: Any = object()


class CallbackSubscription(Subscription):
    def __init__(self, on_cancel: Callable[[], None]) -> None:
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._on_cancel()


@dataclass
class _Listener:
    collection: str
    callback: Callable[[Any], None]
    # Returns the current snapshot (a dict, a list of dicts, or None)
    load: Callable[[], Any]
    doc_id: str | None = None
    last: Any = field(default=_UNSET)
    # Held from load() through callback so deliveries never overtake each other
    lock: Any = field(default_factory=threading.RLock)


class ListenerRegistry:
    """
    Fan-out of store changes to subscribers.
    Each listener is loaded and called under its own lock, one delivery at
    a time; the registry lock only guards membership.
    A listener is only called when its snapshot actually differs from the
    one it saw last, so refreshing too often is harmless.
    """

    def __init__(self) -> None:
        self.telemetry = Telemetry("ListenerRegistry")
        self._lock = threading.RLock()
        self._listeners: dict[int, _Listener] = {}
        self._next_id = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)

    def register(
        self,
        collection: str,
        callback: Callable[[Any], None],
        load: Callable[[], Any],
        doc_id: str | None = None,
    ) -> Subscription:
        listener = _Listener(collection, callback, load, doc_id)
        with self._lock:
            key = self._next_id
            self._next_id += 1
            self._listeners[key] = listener

        subscription = CallbackSubscription(lambda: self._remove(key))
        self._deliver(listener)
        return subscription

    def _remove(self, key: int) -> None:
        with self._lock:
            self._listeners.pop(key, None)

    def refresh(self, collection: str | None = None) -> None:
        """Re-evaluates listeners on `collection` (all listeners when None)."""
        with self._lock:
            targets = [
                lis
                for lis in self._listeners.values()
                if collection is None or lis.collection == collection
            ]
        for listener in targets:
            self._deliver(listener)

    def _deliver(self, listener: _Listener) -> None:
        # A load that started earlier is always delivered before a later one,
        # so the last snapshot a subscriber sees is the latest committed state.
        with listener.lock:
            try:
                snapshot = listener.load()
            except Exception as e:
                self.telemetry.log_error(
                    "Snapshot load failed", e, collection=listener.collection
                )
                return

            if snapshot == listener.last:
                return
            listener.last = snapshot

            try:
                listener.callback(snapshot)
            except Exception as e:
                # A broken subscriber must not fail the write that triggered it
                self.telemetry.log_error(
                    "Listener callback failed",
                    e,
                    collection=listener.collection,
                    doc_id=listener.doc_id,
                )


class SnapshotPoller:
    """
    Background thread that periodically refreshes a registry.
    Used by stores whose backend cannot push changes to this process.
    """

    def __init__(self, registry: ListenerRegistry, interval_s: float) -> None:
        self.registry = registry
        self.interval_s = interval_s
        self.telemetry = Telemetry("SnapshotPoller")
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="learnit-poller", daemon=True
        )
        self._thread.start()
        self.telemetry.log_info("Poller started", interval_s=self.interval_s)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval_s * 2)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            if len(self.registry):
                self.registry.refresh()
