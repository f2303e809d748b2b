from collections.abc import Callable

from learnit.quiz.domain.collections import FEEDBACK
from learnit.quiz.domain.errors import NotFoundError, ValidationError
from learnit.quiz.domain.models import Feedback, FeedbackStatus, FeedbackType
from learnit.quiz.domain.ports import IDocumentStore, Subscription
from learnit.shared.telemetry import Telemetry, measure_time


class FeedbackService:
    def __init__(self, store: IDocumentStore) -> None:
        self.store = store
        self.telemetry = Telemetry("FeedbackService")

    @measure_time("submit_feedback")
    def submit_feedback(
        self,
        type: FeedbackType | str,
        title: str,
        description: str,
        email: str = "",
        username: str = "",
    ) -> str:
        if not title.strip() or not description.strip():
            raise ValidationError("Please fill in all required fields")
        try:
            kind = FeedbackType(type)
        except ValueError as e:
            raise ValidationError(f"Unknown feedback type: {type}") from e

        item = Feedback(
            type=kind,
            title=title.strip(),
            description=description.strip(),
            email=email.strip(),
            username=username.strip() or "Anonymous",
        )
        feedback_id = self.store.add(FEEDBACK, item.to_document())
        self.telemetry.log_info("Feedback submitted", id=feedback_id, type=kind.value)
        return feedback_id

    def list_feedback(self, type: FeedbackType | None = None) -> list[Feedback]:
        where = {"type": FeedbackType(type).value} if type else None
        rows = self.store.query(FEEDBACK, order_by="timestamp", descending=True, where=where)
        return [Feedback.model_validate(r) for r in rows]

    def subscribe_feedback(self, callback: Callable[[list[Feedback]], None]) -> Subscription:
        return self.store.watch_collection(
            FEEDBACK,
            lambda rows: callback([Feedback.model_validate(r) for r in rows]),
            order_by="timestamp",
            descending=True,
        )

    def counts(self) -> dict[str, int]:
        items = self.list_feedback()
        result = {"all": len(items)}
        for kind in FeedbackType:
            result[kind.value] = sum(1 for f in items if f.type == kind)
        return result

    def update_status(self, feedback_id: str, status: FeedbackStatus | str) -> None:
        try:
            new_status = FeedbackStatus(status)
        except ValueError as e:
            raise ValidationError(f"Unknown status: {status}") from e
        if self.store.get(FEEDBACK, feedback_id) is None:
            raise NotFoundError("Feedback", feedback_id)
        self.store.update(FEEDBACK, feedback_id, {"status": new_status.value})
