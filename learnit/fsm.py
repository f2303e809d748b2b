import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from learnit.config import AppConfig
from learnit.quiz.domain.grading import grade
from learnit.quiz.domain.models import GameSession, GameStatus, Player, Question

logger = logging.getLogger(__name__)


class SessionAction(Enum):
    JOIN = auto()  # A participant enters the session
    START = auto()  # Host: LOBBY -> PLAYING
    SUBMIT_ANSWER = auto()  # Player answers the current question
    REVEAL = auto()  # Host: expose the correct answer
    ADVANCE = auto()  # Host: next question, or FINISHED after the last one
    END = auto()  # Host: delete the session document


class RejectionReason(Enum):
    PERMISSION_DENIED = auto()
    INVALID_STATE = auto()
    ALREADY_SUBMITTED = auto()
    ANSWER_REVEALED = auto()
    NO_PLAYERS = auto()
    NO_QUESTIONS = auto()
    UNKNOWN_PLAYER = auto()
    INVALID_INPUT = auto()


HOST_ONLY = {
    SessionAction.START,
    SessionAction.REVEAL,
    SessionAction.ADVANCE,
    SessionAction.END,
}


@dataclass(frozen=True)
class SessionIntent:
    action: SessionAction
    actor_id: str
    player_name: str | None = None
    answer: str | None = None

    @classmethod
    def join(cls, player_id: str, player_name: str) -> "SessionIntent":
        return cls(SessionAction.JOIN, player_id, player_name=player_name)

    @classmethod
    def start(cls, actor_id: str) -> "SessionIntent":
        return cls(SessionAction.START, actor_id)

    @classmethod
    def submit(cls, player_id: str, answer: str) -> "SessionIntent":
        return cls(SessionAction.SUBMIT_ANSWER, player_id, answer=answer)

    @classmethod
    def reveal(cls, actor_id: str) -> "SessionIntent":
        return cls(SessionAction.REVEAL, actor_id)

    @classmethod
    def advance(cls, actor_id: str) -> "SessionIntent":
        return cls(SessionAction.ADVANCE, actor_id)

    @classmethod
    def end(cls, actor_id: str) -> "SessionIntent":
        return cls(SessionAction.END, actor_id)


@dataclass
class Transition:
    """
    An accepted intent. `updates` are dotted-path merge writes and
    `increments` atomic counters; together they turn the stored document
    into `session`. `expected` holds the fields the decision was based on;
    the write only lands while the stored document still has them.
    """

    action: SessionAction
    previous_status: GameStatus
    session: GameSession
    updates: dict[str, Any] = field(default_factory=dict)
    increments: dict[str, int] = field(default_factory=dict)
    expected: dict[str, Any] = field(default_factory=dict)
    deleted: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.updates or self.increments or self.deleted)


@dataclass(frozen=True)
class Rejection:
    action: SessionAction
    reason: RejectionReason
    detail: str = ""


class SessionStateMachine:
    """
    Pure transition logic for a live session.
    Knows nothing about storage or rendering: given the current document
    and an intent it returns either the resulting Transition or a Rejection.
    """

    def __init__(self, questions: list[Question]) -> None:
        self.questions = questions

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    def current_question(self, session: GameSession) -> Question | None:
        idx = session.current_question_index
        if 0 <= idx < len(self.questions):
            return self.questions[idx]
        return None

    def dispatch(
        self, session: GameSession, intent: SessionIntent
    ) -> Transition | Rejection:
        action = intent.action

        # Capability check comes before any state check
        if action in HOST_ONLY and not session.is_host(intent.actor_id):
            return self._reject(
                session,
                intent,
                RejectionReason.PERMISSION_DENIED,
                "only the host can do this",
            )

        match (session.status, action):
            case (_, SessionAction.END):
                result: Transition | Rejection = Transition(
                    action, session.status, session, deleted=True
                )

            case (GameStatus.FINISHED, SessionAction.JOIN):
                result = self._reject(
                    session, intent, RejectionReason.INVALID_STATE, "game is over"
                )
            case (_, SessionAction.JOIN):
                result = self._join(session, intent)

            # LOBBY -> PLAYING
            case (GameStatus.LOBBY, SessionAction.START):
                result = self._start(session, intent)

            # Inside PLAYING
            case (GameStatus.PLAYING, SessionAction.SUBMIT_ANSWER):
                result = self._submit(session, intent)
            case (GameStatus.PLAYING, SessionAction.REVEAL):
                result = self._reveal(session, intent)
            case (GameStatus.PLAYING, SessionAction.ADVANCE):
                result = self._advance(session, intent)

            # Catch-all for invalid transitions
            case _:
                result = self._reject(
                    session,
                    intent,
                    RejectionReason.INVALID_STATE,
                    f"not allowed while {session.status.value}",
                )

        if isinstance(result, Transition) and result.changed:
            logger.info(
                f"🔄 FSM: {result.previous_status.name} --[{action.name}]--> "
                f"{result.session.status.name} (q={result.session.current_question_index})"
            )
        return result

    # --- Transitions ---

    def _join(self, session: GameSession, intent: SessionIntent) -> Transition | Rejection:
        player_id = intent.actor_id
        name = (intent.player_name or "").strip()

        if session.is_host(player_id):
            return self._reject(
                session, intent, RejectionReason.INVALID_STATE, "host does not play"
            )
        if not player_id or "." in player_id:
            return self._reject(
                session, intent, RejectionReason.INVALID_INPUT, "bad player id"
            )
        if not name:
            return self._reject(
                session, intent, RejectionReason.INVALID_INPUT, "name is required"
            )

        if player_id in session.players:
            # Rejoin keeps the existing entry (and its score)
            return Transition(intent.action, session.status, session)

        player = Player(id=player_id, name=name)
        new_session = session.model_copy(deep=True)
        new_session.players[player_id] = player
        return Transition(
            intent.action,
            session.status,
            new_session,
            updates={f"players.{player_id}": player.model_dump(mode="json", by_alias=True)},
            expected={"status": session.status.value, f"players.{player_id}": None},
        )

    def _start(self, session: GameSession, intent: SessionIntent) -> Transition | Rejection:
        if not session.players:
            return self._reject(
                session, intent, RejectionReason.NO_PLAYERS, "nobody has joined"
            )
        if not self.questions:
            return self._reject(
                session, intent, RejectionReason.NO_QUESTIONS, "deck is empty"
            )

        new_session = session.model_copy(deep=True)
        new_session.status = GameStatus.PLAYING
        new_session.current_question_index = 0
        new_session.show_answer = False
        updates: dict[str, Any] = {
            "status": GameStatus.PLAYING.value,
            "currentQuestionIndex": 0,
            "showAnswer": False,
        }
        updates.update(self._reset_submissions(new_session))
        return Transition(
            intent.action,
            session.status,
            new_session,
            updates=updates,
            expected={"status": GameStatus.LOBBY.value},
        )

    def _submit(self, session: GameSession, intent: SessionIntent) -> Transition | Rejection:
        player = session.players.get(intent.actor_id)
        if player is None:
            return self._reject(
                session, intent, RejectionReason.UNKNOWN_PLAYER, "join first"
            )
        if session.show_answer:
            return self._reject(
                session, intent, RejectionReason.ANSWER_REVEALED, "answer is shown"
            )
        if player.has_submitted:
            return self._reject(
                session,
                intent,
                RejectionReason.ALREADY_SUBMITTED,
                f"question {session.current_question_index}",
            )
        if intent.answer is None or not intent.answer.strip():
            return self._reject(
                session, intent, RejectionReason.INVALID_INPUT, "empty answer"
            )

        question = self.current_question(session)
        if question is None:
            return self._reject(
                session, intent, RejectionReason.INVALID_STATE, "no current question"
            )

        is_correct = grade(question, intent.answer)
        prefix = f"players.{player.id}"

        new_session = session.model_copy(deep=True)
        new_player = new_session.players[player.id]
        new_player.has_submitted = True
        new_player.submitted_answer = intent.answer
        new_player.is_correct = is_correct

        increments: dict[str, int] = {}
        if is_correct:
            new_player.score += AppConfig.POINTS_PER_CORRECT
            increments[f"{prefix}.score"] = AppConfig.POINTS_PER_CORRECT

        return Transition(
            intent.action,
            session.status,
            new_session,
            updates={
                f"{prefix}.hasSubmitted": True,
                f"{prefix}.submittedAnswer": intent.answer,
                f"{prefix}.isCorrect": is_correct,
            },
            increments=increments,
            expected={
                **self._position(session),
                f"{prefix}.hasSubmitted": False,
            },
        )

    def _reveal(self, session: GameSession, intent: SessionIntent) -> Transition | Rejection:
        if session.show_answer:
            return self._reject(
                session, intent, RejectionReason.INVALID_STATE, "already revealed"
            )
        new_session = session.model_copy(deep=True)
        new_session.show_answer = True
        return Transition(
            intent.action,
            session.status,
            new_session,
            updates={"showAnswer": True},
            expected=self._position(session),
        )

    def _advance(self, session: GameSession, intent: SessionIntent) -> Transition | Rejection:
        if not session.show_answer:
            return self._reject(
                session, intent, RejectionReason.INVALID_STATE, "reveal the answer first"
            )

        new_session = session.model_copy(deep=True)
        next_idx = session.current_question_index + 1

        if next_idx >= len(self.questions):
            # Index stays on the last question once the game is over
            new_session.status = GameStatus.FINISHED
            return Transition(
                intent.action,
                session.status,
                new_session,
                updates={"status": GameStatus.FINISHED.value},
                expected=self._position(session),
            )

        new_session.current_question_index = next_idx
        new_session.show_answer = False
        updates: dict[str, Any] = {
            "currentQuestionIndex": next_idx,
            "showAnswer": False,
        }
        updates.update(self._reset_submissions(new_session))
        return Transition(
            intent.action,
            session.status,
            new_session,
            updates=updates,
            expected=self._position(session),
        )

    # --- Helpers ---

    @staticmethod
    def _position(session: GameSession) -> dict[str, Any]:
        return {
            "status": session.status.value,
            "currentQuestionIndex": session.current_question_index,
            "showAnswer": session.show_answer,
        }

    @staticmethod
    def _reset_submissions(session: GameSession) -> dict[str, Any]:
        """Clears per-question fields on `session` and returns the matching writes."""
        updates: dict[str, Any] = {}
        for pid, player in session.players.items():
            player.has_submitted = False
            player.submitted_answer = None
            player.is_correct = None
            updates[f"players.{pid}.hasSubmitted"] = False
            updates[f"players.{pid}.submittedAnswer"] = None
            updates[f"players.{pid}.isCorrect"] = None
        return updates

    @staticmethod
    def _reject(
        session: GameSession,
        intent: SessionIntent,
        reason: RejectionReason,
        detail: str,
    ) -> Rejection:
        logger.warning(
            f"⛔ REJECTED: {session.status.name} + {intent.action.name} "
            f"by {intent.actor_id}: {reason.name} ({detail})"
        )
        return Rejection(intent.action, reason, detail)
