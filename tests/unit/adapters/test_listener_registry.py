import threading
from unittest.mock import Mock

from learnit.quiz.adapters.listeners import ListenerRegistry, SnapshotPoller


def test_register_delivers_initial_snapshot():
    registry = ListenerRegistry()
    callback = Mock()

    registry.register("decks", callback, lambda: [{"id": "1"}])

    callback.assert_called_once_with([{"id": "1"}])


def test_refresh_only_delivers_changes():
    registry = ListenerRegistry()
    state = {"value": 1}
    callback = Mock()
    registry.register("decks", callback, lambda: dict(state))

    registry.refresh("decks")
    assert callback.call_count == 1

    state["value"] = 2
    registry.refresh("decks")
    assert callback.call_count == 2
    callback.assert_called_with({"value": 2})


def test_refresh_is_scoped_to_collection():
    registry = ListenerRegistry()
    state = {"n": 0}
    callback = Mock()
    registry.register("decks", callback, lambda: state["n"])

    state["n"] = 1
    registry.refresh("sessions")
    assert callback.call_count == 1

    registry.refresh()
    assert callback.call_count == 2


def test_cancel_stops_delivery():
    registry = ListenerRegistry()
    state = {"n": 0}
    callback = Mock()
    subscription = registry.register("decks", callback, lambda: state["n"])

    subscription.cancel()
    subscription.cancel()
    state["n"] = 1
    registry.refresh()

    assert subscription.active is False
    assert callback.call_count == 1
    assert len(registry) == 0


def test_failing_callback_does_not_propagate():
    registry = ListenerRegistry()
    registry.register("decks", Mock(side_effect=RuntimeError("boom")), lambda: 1)
    registry.refresh()


def test_poller_start_stop():
    poller = SnapshotPoller(ListenerRegistry(), interval_s=0.01)
    poller.start()
    assert poller.running is True
    poller.stop()
    assert poller.running is False


def test_overlapping_refreshes_end_on_latest_snapshot():
    """
    Writer A loads v1 and stalls; writer B commits v2 and refreshes.
    The subscriber must end up on v2, not on A's late v1.
    """
    registry = ListenerRegistry()
    store = {"v": 0}
    delivered = []
    a_loaded = threading.Event()
    a_resume = threading.Event()

    def load():
        snapshot = dict(store)
        if threading.current_thread().name == "writer-a":
            a_loaded.set()
            a_resume.wait(2)
        return snapshot

    registry.register("sessions", delivered.append, load)

    store["v"] = 1
    writer_a = threading.Thread(target=registry.refresh, name="writer-a")
    writer_a.start()
    assert a_loaded.wait(2)

    store["v"] = 2
    writer_b = threading.Thread(target=registry.refresh, name="writer-b")
    writer_b.start()
    writer_b.join(timeout=0.2)  # blocked behind writer A's delivery

    a_resume.set()
    writer_a.join(2)
    writer_b.join(2)

    assert delivered[0] == {"v": 0}
    assert delivered[-1] == {"v": 2}
    assert delivered == [{"v": 0}, {"v": 1}, {"v": 2}]
