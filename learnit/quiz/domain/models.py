import time
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    return int(time.time() * 1000)


# --- Enums ---
class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    IDENTIFICATION = "IDENTIFICATION"
    ENUMERATION = "ENUMERATION"


class GameStatus(str, Enum):
    LOBBY = "LOBBY"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


class FeedbackType(str, Enum):
    BUG = "bug"
    FEEDBACK = "feedback"


class FeedbackStatus(str, Enum):
    OPEN = "open"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


# --- Base ---
class Document(BaseModel):
    """
    Documents are stored with camelCase keys; attributes stay snake_case.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        data = self.model_dump(mode="json", by_alias=True)
        data.pop("id", None)
        return data


# --- Entities ---
class Deck(Document):
    id: str = ""
    title: str
    subject: str = ""
    purpose: str = ""
    exam_date: str = ""
    author: str = "Anonymous"
    question_count: int = 0
    created_at: int = Field(default_factory=now_ms)


class Question(Document):
    id: str = ""
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    question: str
    options: list[str] | None = None
    answer: str | list[str]
    author: str = "Anonymous"
    created_at: int = Field(default_factory=now_ms)

    def answer_text(self) -> str:
        if isinstance(self.answer, list):
            return ", ".join(self.answer)
        return self.answer


class Player(Document):
    id: str
    name: str
    score: int = 0
    has_submitted: bool = False
    submitted_answer: str | None = None
    is_correct: bool | None = None


class GameSession(Document):
    id: str = ""
    deck_id: str
    deck_title: str = ""
    host_id: str
    status: GameStatus = GameStatus.LOBBY
    current_question_index: int = 0
    players: dict[str, Player] = Field(default_factory=dict)
    show_answer: bool = False
    created_at: int = Field(default_factory=now_ms)

    def is_host(self, user_id: str) -> bool:
        return self.host_id == user_id

    def submission_count(self) -> int:
        return sum(1 for p in self.players.values() if p.has_submitted)

    def all_submitted(self) -> bool:
        """True once at least one player joined and every player submitted."""
        return bool(self.players) and all(
            p.has_submitted for p in self.players.values()
        )

    def ranked_players(self) -> list[Player]:
        return sorted(self.players.values(), key=lambda p: (-p.score, p.name))


class UserProfile(Document):
    id: str
    display_name: str = ""
    photo_url: str = Field(default="", alias="photoURL")
    total_correct_answers: int = 0
    questions_contributed: int = 0
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)


class Feedback(Document):
    id: str = ""
    type: FeedbackType
    title: str
    description: str
    email: str = ""
    username: str = ""
    timestamp: int = Field(default_factory=now_ms)
    status: FeedbackStatus = FeedbackStatus.OPEN


class Identity(Document):
    uid: str
    display_name: str = ""
    email: str | None = None
    photo_url: str | None = Field(default=None, alias="photoURL")
    is_guest: bool = True


# --- Drafts (user input before validation) ---
class QuestionDraft(BaseModel):
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    question: str
    options: list[str] | None = None
    answer: str | list[str]
    author: str = "Anonymous"


class GeneratedQuestion(BaseModel):
    question: str
    options: list[str]
    answer: str
