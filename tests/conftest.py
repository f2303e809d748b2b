from collections.abc import Callable
from typing import Any

import pytest
import streamlit as st

from learnit.quiz.adapters.db_manager import DatabaseManager
from learnit.quiz.adapters.identity import GuestIdentityProvider
from learnit.quiz.adapters.sqlite_store import SQLiteDocumentStore
from learnit.quiz.application.deck_service import DeckService
from learnit.quiz.application.feedback_service import FeedbackService
from learnit.quiz.application.profile_service import ProfileService
from learnit.quiz.application.session_client import Scheduler, TimerHandle
from learnit.quiz.application.session_service import LiveSessionService
from learnit.quiz.domain.models import QuestionDraft, QuestionType
from learnit.quiz.domain.ports import IBlobStore, IStateProvider


class MockSessionState(dict):
    """
    Mock for st.session_state that behaves like both a dict and an object.
    Allows both dict-style and attribute-style access.
    """

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError as err:
            raise AttributeError(
                f"'MockSessionState' object has no attribute '{name}'"
            ) from err

    def __setattr__(self, name, value):
        self[name] = value

    def __delattr__(self, name):
        try:
            del self[name]
        except KeyError as err:
            raise AttributeError(
                f"'MockSessionState' object has no attribute '{name}'"
            ) from err


@pytest.fixture(autouse=True)
def mock_streamlit_session():
    """
    Auto-use fixture that ensures st.session_state exists for all tests.
    """
    original_session_state = getattr(st, "session_state", None)

    st.session_state = MockSessionState()

    yield st.session_state

    st.session_state.clear()

    if original_session_state is not None:
        st.session_state = original_session_state


# --- Test doubles ---


class DictStateProvider(IStateProvider):
    def __init__(self) -> None:
        self.data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def clear(self) -> None:
        self.data.clear()


class MemoryBlobStore(IBlobStore):
    def __init__(self) -> None:
        self.blobs: dict[str, tuple[bytes, str]] = {}

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        self.blobs[path] = (data, content_type)
        return f"memory://{path}"


class ManualTimer(TimerHandle):
    def __init__(self, delay_s: float, fn: Callable[[], None]) -> None:
        self.delay_s = delay_s
        self.fn = fn
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Collects timers; tests fire them explicitly."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def schedule(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle:
        timer = ManualTimer(delay_s, fn)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_next(self) -> None:
        timer = self.pending[0]
        timer.fired = True
        timer.fn()

    def fire_all(self) -> int:
        """Fires every pending timer (including ones scheduled while firing)."""
        fired = 0
        while self.pending:
            timer = self.pending[0]
            timer.fired = True
            timer.fn()
            fired += 1
        return fired


# --- Fixtures ---


@pytest.fixture
def store():
    """A clean, empty in-memory document store."""
    db_manager = DatabaseManager(db_path=":memory:")
    yield SQLiteDocumentStore(db_manager=db_manager)
    db_manager.close()


@pytest.fixture
def state():
    return DictStateProvider()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def decks(store):
    return DeckService(store)


@pytest.fixture
def sessions(store, decks):
    return LiveSessionService(store, decks)


@pytest.fixture
def feedback(store):
    return FeedbackService(store)


@pytest.fixture
def guest(state):
    return GuestIdentityProvider(state)


@pytest.fixture
def profiles(store, decks, blobs, guest):
    return ProfileService(store, decks, blobs, guest)


def make_mc(question: str, options: list[str], answer: str, author: str = "Tester") -> QuestionDraft:
    return QuestionDraft(
        type=QuestionType.MULTIPLE_CHOICE,
        question=question,
        options=options,
        answer=answer,
        author=author,
    )


@pytest.fixture
def mc():
    """Factory for multiple choice drafts."""
    return make_mc


@pytest.fixture
def capitals_deck(decks):
    """Deck with two multiple choice questions and one enumeration."""
    deck_id = decks.create_deck("Capitals", "Geography", "Quiz night", author="Host")
    decks.add_question(deck_id, make_mc("Capital of France?", ["Paris", "Rome"], "Paris"))
    decks.add_question(deck_id, make_mc("Capital of Italy?", ["Paris", "Rome"], "Rome"))
    decks.add_question(
        deck_id,
        QuestionDraft(
            type=QuestionType.ENUMERATION,
            question="Types of cell division",
            answer=["Mitosis", "Meiosis"],
        ),
    )
    return deck_id
