import threading
from collections.abc import Callable
from typing import Any

from learnit.fsm import Rejection, SessionIntent, SessionStateMachine, Transition
from learnit.quiz.application.deck_service import DeckService
from learnit.quiz.domain.collections import SESSIONS
from learnit.quiz.domain.errors import BackendError, NotFoundError, TransitionRejected
from learnit.quiz.domain.models import GameSession
from learnit.quiz.domain.ports import IDocumentStore, Subscription
from learnit.shared.telemetry import Telemetry, measure_time

SessionCallback = Callable[[GameSession | None], None]

MAX_DISPATCH_ATTEMPTS = 3


class LiveSessionService:
    """
    Runs intents against the stored session document.

    Every operation re-reads the document, lets the state machine decide,
    and writes only the fields the transition touched. Intents on one
    session are serialized in this process; across processes the write is
    conditional on the fields the decision read, and a conflicting write
    is re-dispatched against the fresh document.
    """

    def __init__(self, store: IDocumentStore, decks: DeckService) -> None:
        self.store = store
        self.decks = decks
        self.telemetry = Telemetry("LiveSessionService")
        self._locks: dict[str, Any] = {}
        self._locks_guard = threading.Lock()

    # --- Queries ---

    def get_session(self, session_id: str) -> GameSession | None:
        data = self.store.get(SESSIONS, session_id)
        return GameSession.model_validate(data) if data else None

    def require_session(self, session_id: str) -> GameSession:
        session = self.get_session(session_id)
        if session is None:
            raise NotFoundError("Session", session_id)
        return session

    def state_machine(self, session: GameSession) -> SessionStateMachine:
        return SessionStateMachine(self.decks.get_questions(session.deck_id))

    def subscribe(self, session_id: str, callback: SessionCallback) -> Subscription:
        """A None snapshot means the session was ended (document deleted)."""
        return self.store.watch_document(
            SESSIONS,
            session_id,
            lambda data: callback(GameSession.model_validate(data) if data else None),
        )

    # --- Commands ---

    @measure_time("create_session")
    def create_session(self, deck_id: str, host_id: str) -> str:
        deck = self.decks.require_deck(deck_id)
        session = GameSession(deck_id=deck.id, deck_title=deck.title, host_id=host_id)
        session_id = self.store.add(SESSIONS, session.to_document())
        self.telemetry.log_info("Session created", session_id=session_id, deck_id=deck_id)
        return session_id

    def join_session(self, session_id: str, player_id: str, player_name: str) -> GameSession:
        return self.dispatch(session_id, SessionIntent.join(player_id, player_name))

    def start_game(self, session_id: str, actor_id: str) -> GameSession:
        return self.dispatch(session_id, SessionIntent.start(actor_id))

    def submit_answer(self, session_id: str, player_id: str, answer: str) -> GameSession:
        return self.dispatch(session_id, SessionIntent.submit(player_id, answer))

    def reveal_answer(self, session_id: str, actor_id: str) -> GameSession:
        return self.dispatch(session_id, SessionIntent.reveal(actor_id))

    def advance_question(self, session_id: str, actor_id: str) -> GameSession:
        return self.dispatch(session_id, SessionIntent.advance(actor_id))

    def end_session(self, session_id: str, actor_id: str) -> None:
        self.dispatch(session_id, SessionIntent.end(actor_id))

    @measure_time("dispatch")
    def dispatch(self, session_id: str, intent: SessionIntent) -> GameSession:
        with self._session_lock(session_id):
            for attempt in range(1, MAX_DISPATCH_ATTEMPTS + 1):
                session = self.require_session(session_id)
                result = self.state_machine(session).dispatch(session, intent)

                if isinstance(result, Rejection):
                    Telemetry.count_rejection(result.action.name, result.reason.name)
                    raise TransitionRejected(result)

                if self._apply(session_id, result):
                    Telemetry.count_transition(result.action.name)
                    return result.session

                # Another writer changed the document since it was read
                self.telemetry.log_warning(
                    "Write conflict, re-reading",
                    session_id=session_id,
                    action=intent.action.name,
                    attempt=attempt,
                )

        raise BackendError(f"{intent.action.name} on session {session_id}")

    def _session_lock(self, session_id: str) -> Any:
        with self._locks_guard:
            return self._locks.setdefault(session_id, threading.RLock())

    def _apply(self, session_id: str, transition: Transition) -> bool:
        """Returns False when the document moved on and nothing was written."""
        if transition.deleted:
            self.store.delete(SESSIONS, session_id)
            with self._locks_guard:
                self._locks.pop(session_id, None)
            self.telemetry.log_info("Session ended", session_id=session_id)
            return True

        if not transition.changed:
            return True
        return self.store.apply_if(
            SESSIONS,
            session_id,
            transition.expected,
            transition.updates,
            transition.increments,
        )
