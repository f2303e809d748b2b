from collections.abc import Callable
from typing import Any

from learnit.config import AppConfig
from learnit.quiz.domain.collections import DECKS, questions_of
from learnit.quiz.domain.errors import ConfigurationError, NotFoundError, ValidationError
from learnit.quiz.domain.models import Deck, Question, QuestionDraft, QuestionType
from learnit.quiz.domain.ports import IDocumentStore, IQuestionGenerator, Subscription
from learnit.shared.telemetry import Telemetry, measure_time

DECK_FIELDS = {
    "title": "title",
    "subject": "subject",
    "purpose": "purpose",
    "exam_date": "examDate",
}


def build_question(draft: QuestionDraft) -> Question:
    """Validates user input and normalizes it into a storable Question."""
    text = draft.question.strip()
    if not text:
        raise ValidationError("Please fill in all required fields")

    options: list[str] | None = None
    answer: str | list[str]

    if draft.type == QuestionType.MULTIPLE_CHOICE:
        raw_options = draft.options or []
        options = [o.strip() for o in raw_options]
        if len(options) < 2 or any(not o for o in options):
            raise ValidationError("Please fill all options")
        if not isinstance(draft.answer, str) or draft.answer.strip() not in options:
            raise ValidationError("The answer must be one of the options")
        answer = draft.answer.strip()

    elif draft.type == QuestionType.ENUMERATION:
        items = draft.answer.split(",") if isinstance(draft.answer, str) else draft.answer
        answer = [i.strip() for i in items if i.strip()]
        if not answer:
            raise ValidationError("Please fill in all required fields")

    else:
        if not isinstance(draft.answer, str) or not draft.answer.strip():
            raise ValidationError("Please fill in all required fields")
        answer = draft.answer.strip()

    return Question(
        type=draft.type,
        question=text,
        options=options,
        answer=answer,
        author=draft.author.strip() or "Anonymous",
    )


class DeckService:
    """
    Decks and their question lists. questionCount is kept in step with the
    question documents by pairing each add/delete with an atomic increment;
    the pair is not transactional, recount_questions() repairs drift.
    """

    def __init__(
        self, store: IDocumentStore, generator: IQuestionGenerator | None = None
    ) -> None:
        self.store = store
        self.generator = generator
        self.telemetry = Telemetry("DeckService")

    # --- Decks ---

    @measure_time("create_deck")
    def create_deck(
        self,
        title: str,
        subject: str,
        purpose: str = "",
        exam_date: str = "",
        author: str = "Anonymous",
    ) -> str:
        if not title.strip() or not subject.strip():
            raise ValidationError("Title and subject are required")

        deck = Deck(
            title=title.strip(),
            subject=subject.strip(),
            purpose=purpose.strip(),
            exam_date=exam_date.strip(),
            author=author.strip() or "Anonymous",
        )
        deck_id = self.store.add(DECKS, deck.to_document())
        self.telemetry.log_info("Deck created", deck_id=deck_id, title=deck.title)
        return deck_id

    def get_deck(self, deck_id: str) -> Deck | None:
        data = self.store.get(DECKS, deck_id)
        return Deck.model_validate(data) if data else None

    def require_deck(self, deck_id: str) -> Deck:
        deck = self.get_deck(deck_id)
        if deck is None:
            raise NotFoundError("Deck", deck_id)
        return deck

    def list_decks(self) -> list[Deck]:
        rows = self.store.query(DECKS, order_by="createdAt", descending=True)
        return [Deck.model_validate(r) for r in rows]

    def subscribe_decks(self, callback: Callable[[list[Deck]], None]) -> Subscription:
        return self.store.watch_collection(
            DECKS,
            lambda rows: callback([Deck.model_validate(r) for r in rows]),
            order_by="createdAt",
            descending=True,
        )

    def update_deck(self, deck_id: str, **fields: Any) -> None:
        unknown = set(fields) - set(DECK_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown deck fields: {sorted(unknown)}")
        if "title" in fields and not str(fields["title"]).strip():
            raise ValidationError("Title is required")

        self.require_deck(deck_id)
        self.store.update(
            DECKS, deck_id, {DECK_FIELDS[k]: str(v).strip() for k, v in fields.items()}
        )

    @measure_time("delete_deck")
    def delete_deck(self, deck_id: str) -> None:
        self.require_deck(deck_id)
        for q in self.store.query(questions_of(deck_id)):
            self.store.delete(questions_of(deck_id), q["id"])
        self.store.delete(DECKS, deck_id)
        self.telemetry.log_info("Deck deleted", deck_id=deck_id)

    # --- Questions ---

    def get_questions(self, deck_id: str) -> list[Question]:
        rows = self.store.query(questions_of(deck_id), order_by="createdAt")
        return [Question.model_validate(r) for r in rows]

    def subscribe_questions(
        self, deck_id: str, callback: Callable[[list[Question]], None]
    ) -> Subscription:
        return self.store.watch_collection(
            questions_of(deck_id),
            lambda rows: callback([Question.model_validate(r) for r in rows]),
            order_by="createdAt",
        )

    @measure_time("add_question")
    def add_question(self, deck_id: str, draft: QuestionDraft) -> str:
        question = build_question(draft)
        self.require_deck(deck_id)

        question_id = self.store.add(questions_of(deck_id), question.to_document())
        self.store.increment(DECKS, deck_id, "questionCount", 1)

        self.telemetry.log_info(
            "Question added", deck_id=deck_id, question_id=question_id, type=question.type.value
        )
        return question_id

    def update_question(self, deck_id: str, question_id: str, draft: QuestionDraft) -> None:
        question = build_question(draft)
        if self.store.get(questions_of(deck_id), question_id) is None:
            raise NotFoundError("Question", question_id)

        doc = question.to_document()
        doc.pop("createdAt", None)
        self.store.update(questions_of(deck_id), question_id, doc)

    @measure_time("delete_question")
    def delete_question(self, deck_id: str, question_id: str) -> None:
        if self.store.get(questions_of(deck_id), question_id) is None:
            raise NotFoundError("Question", question_id)

        self.store.delete(questions_of(deck_id), question_id)
        self.store.increment(DECKS, deck_id, "questionCount", -1)
        self.telemetry.log_info("Question deleted", deck_id=deck_id, question_id=question_id)

    def recount_questions(self, deck_id: str) -> int:
        self.require_deck(deck_id)
        count = len(self.store.query(questions_of(deck_id)))
        self.store.update(DECKS, deck_id, {"questionCount": count})
        return count

    @measure_time("generate_questions")
    def generate_questions(
        self, deck_id: str, count: int = AppConfig.DEFAULT_GENERATED_COUNT
    ) -> list[str]:
        if self.generator is None:
            raise ConfigurationError("Question generation is not configured")

        deck = self.require_deck(deck_id)
        generated = self.generator.generate(deck.subject, deck.purpose, count)

        ids = []
        for item in generated:
            draft = QuestionDraft(
                type=QuestionType.MULTIPLE_CHOICE,
                question=item.question,
                options=item.options,
                answer=item.answer,
                author=AppConfig.GENERATED_AUTHOR,
            )
            ids.append(self.add_question(deck_id, draft))
        return ids
