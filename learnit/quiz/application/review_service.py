from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from learnit.quiz.domain.errors import ValidationError
from learnit.quiz.domain.grading import grade
from learnit.quiz.domain.models import Question
from learnit.shared.telemetry import Telemetry

if TYPE_CHECKING:
    from learnit.quiz.application.profile_service import ProfileService


@dataclass
class ReviewAttempt:
    answer: str | None
    is_correct: bool
    gave_up: bool = False


@dataclass
class ReviewSummary:
    answered: int
    correct: int
    total: int

    @property
    def percentage(self) -> int:
        return round(self.correct / self.total * 100) if self.total else 0


@dataclass
class SoloReview:
    """
    Walks a deck's questions one at a time. Each question accepts a single
    attempt; giving up reveals the answer and counts as incorrect.
    """

    questions: list[Question]
    uid: str | None = None
    profiles: "ProfileService | None" = None
    index: int = 0
    attempts: dict[int, ReviewAttempt] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.telemetry = Telemetry("SoloReview")

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def finished(self) -> bool:
        return self.index >= self.total

    def current(self) -> Question | None:
        return None if self.finished else self.questions[self.index]

    def current_attempt(self) -> ReviewAttempt | None:
        return self.attempts.get(self.index)

    def answer(self, answer: str) -> bool:
        question = self._require_open()
        if not answer.strip():
            raise ValidationError("Please enter an answer")

        is_correct = grade(question, answer)
        self.attempts[self.index] = ReviewAttempt(answer, is_correct)

        if is_correct and self.uid and self.profiles is not None:
            self.profiles.record_correct_answer(self.uid)
        return is_correct

    def give_up(self) -> None:
        self._require_open()
        self.attempts[self.index] = ReviewAttempt(None, False, gave_up=True)

    def next(self) -> Question | None:
        if not self.finished:
            self.index += 1
        if self.finished:
            self.telemetry.log_info("Review finished", **self.summary().__dict__)
        return self.current()

    def restart(self) -> None:
        self.index = 0
        self.attempts.clear()

    def summary(self) -> ReviewSummary:
        return ReviewSummary(
            answered=len(self.attempts),
            correct=sum(1 for a in self.attempts.values() if a.is_correct),
            total=self.total,
        )

    def _require_open(self) -> Question:
        question = self.current()
        if question is None:
            raise ValidationError("Review is already finished")
        if self.index in self.attempts:
            raise ValidationError("This question was already answered")
        return question
