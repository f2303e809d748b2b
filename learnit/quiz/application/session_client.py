import threading
from abc import ABC, abstractmethod
from collections.abc import Callable

from learnit.config import AppConfig
from learnit.fsm import SessionAction, SessionStateMachine
from learnit.quiz.application.session_service import LiveSessionService
from learnit.quiz.domain.errors import LearnItError, TransitionRejected
from learnit.quiz.domain.models import GameSession, GameStatus, Player, Question
from learnit.quiz.domain.ports import Subscription
from learnit.shared.telemetry import Telemetry


# --- Scheduling ---
class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        pass


class Scheduler(ABC):
    @abstractmethod
    def schedule(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle:
        pass


class _ThreadTimer(TimerHandle):
    def __init__(self, timer: threading.Timer) -> None:
        self.timer = timer

    def cancel(self) -> None:
        self.timer.cancel()


class ThreadingScheduler(Scheduler):
    def schedule(self, delay_s: float, fn: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay_s, fn)
        timer.daemon = True
        timer.start()
        return _ThreadTimer(timer)


# --- Client ---
class LiveSessionClient:
    """
    One participant's live view of a session.

    Holds the latest snapshot pushed by the store and forwards the user's
    actions to the service. On the host's client it also drives the game
    forward: reveal shortly after everyone answered, advance a few seconds
    after the reveal. Timers belong to one (status, question, revealed)
    position and are dropped as soon as the position changes.
    """

    def __init__(
        self,
        service: LiveSessionService,
        session_id: str,
        user_id: str,
        scheduler: Scheduler | None = None,
        auto_progress: bool | None = None,
        on_update: Callable[[GameSession | None], None] | None = None,
    ) -> None:
        self.service = service
        self.session_id = session_id
        self.user_id = user_id
        self.scheduler = scheduler or ThreadingScheduler()
        self.auto_progress = (
            AppConfig.auto_progress_enabled() if auto_progress is None else auto_progress
        )
        self.on_update = on_update
        self.telemetry = Telemetry("LiveSessionClient")

        self.session: GameSession | None = None
        # ended: the document went away after we saw it; missing: it never existed
        self.ended = False
        self.missing = False
        self._seen = False
        self._machine: SessionStateMachine | None = None
        self._subscription: Subscription | None = None
        self._timers: dict[SessionAction, TimerHandle] = {}
        self._position: tuple[GameStatus, int, bool] | None = None
        self._lock = threading.RLock()

    # --- Lifecycle ---

    def open(self) -> "LiveSessionClient":
        if self._subscription is None:
            self._subscription = self.service.subscribe(self.session_id, self._on_snapshot)
        return self

    def close(self) -> None:
        with self._lock:
            self._cancel_timers()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def __enter__(self) -> "LiveSessionClient":
        return self.open()

    def __exit__(self, *exc: object) -> None:
        self.close()

    # --- View helpers ---

    @property
    def is_host(self) -> bool:
        return self.session is not None and self.session.is_host(self.user_id)

    @property
    def pending_actions(self) -> set[SessionAction]:
        with self._lock:
            return set(self._timers)

    @property
    def questions(self) -> list[Question]:
        return self._machine.questions if self._machine else []

    def current_question(self) -> Question | None:
        if self.session is None or self._machine is None:
            return None
        return self._machine.current_question(self.session)

    def me(self) -> Player | None:
        if self.session is None:
            return None
        return self.session.players.get(self.user_id)

    def mini_leaderboard(self, size: int = AppConfig.MINI_LEADERBOARD_SIZE) -> list[Player]:
        if self.session is None:
            return []
        return self.session.ranked_players()[:size]

    # --- Actions ---

    def join(self, name: str) -> None:
        self.service.join_session(self.session_id, self.user_id, name)

    def start(self) -> None:
        self.service.start_game(self.session_id, self.user_id)

    def submit(self, answer: str) -> None:
        self.service.submit_answer(self.session_id, self.user_id, answer)

    def reveal(self) -> None:
        self.service.reveal_answer(self.session_id, self.user_id)

    def advance(self) -> None:
        self.service.advance_question(self.session_id, self.user_id)

    def end(self) -> None:
        self.service.end_session(self.session_id, self.user_id)

    # --- Snapshots ---

    def _on_snapshot(self, session: GameSession | None) -> None:
        with self._lock:
            if session is None:
                if self._seen:
                    self.ended = True
                else:
                    self.missing = True
                self.session = None
                self._cancel_timers()
            else:
                self._seen = True
                if self._machine is None:
                    self._machine = self.service.state_machine(session)

                position = (
                    session.status,
                    session.current_question_index,
                    session.show_answer,
                )
                if position != self._position:
                    self._cancel_timers()
                    self._position = position

                self.session = session
                if self.auto_progress and session.is_host(self.user_id):
                    self._schedule_progress(session)

        if self.on_update is not None:
            self.on_update(session)

    def _schedule_progress(self, session: GameSession) -> None:
        if session.status != GameStatus.PLAYING or not session.all_submitted():
            return

        if not session.show_answer:
            self._schedule(SessionAction.REVEAL, AppConfig.AUTO_REVEAL_DELAY_S)
        else:
            self._schedule(SessionAction.ADVANCE, AppConfig.AUTO_ADVANCE_DELAY_S)

    def _schedule(self, action: SessionAction, delay_s: float) -> None:
        if action in self._timers:
            return
        self._timers[action] = self.scheduler.schedule(
            delay_s, lambda: self._fire(action)
        )
        self.telemetry.log_info(
            "⏲️ Scheduled", action=action.name, delay_s=delay_s, session_id=self.session_id
        )

    def _fire(self, action: SessionAction) -> None:
        with self._lock:
            if self._timers.pop(action, None) is None:
                return

        try:
            if action == SessionAction.REVEAL:
                self.reveal()
            else:
                self.advance()
        except TransitionRejected as e:
            # The session moved on before the timer fired
            self.telemetry.log_info("Stale timer", action=action.name, reason=e.reason.name)
        except LearnItError as e:
            self.telemetry.log_error(f"Auto {action.name} failed", e)

    def _cancel_timers(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()
