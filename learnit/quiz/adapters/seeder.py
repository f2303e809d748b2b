import json
import os

from learnit.config import AppConfig
from learnit.quiz.application.deck_service import DeckService
from learnit.quiz.domain.collections import DECKS
from learnit.quiz.domain.models import QuestionDraft
from learnit.shared.telemetry import Telemetry


class DataSeeder:
    """
    Populates an empty local store with a demo deck so a fresh checkout
    has something to review and play.
    """

    def __init__(self, decks: DeckService) -> None:
        self.decks = decks
        self.telemetry = Telemetry("DataSeeder")

    def seed_if_empty(self, seed_file: str = AppConfig.SEED_FILE) -> int:
        """Returns the number of decks created."""
        store = self.decks.store
        try:
            if not store.is_empty(DECKS):
                return 0

            if not os.path.exists(seed_file):
                self.telemetry.log_error(
                    "Seed file NOT found", FileNotFoundError(seed_file)
                )
                return 0

            self.telemetry.log_info("DB appears empty. Attempting to seed...")
            with open(seed_file, encoding="utf-8") as f:
                data = json.load(f)

            created = 0
            for deck in data:
                deck_id = self.decks.create_deck(
                    title=deck["title"],
                    subject=deck["subject"],
                    purpose=deck.get("purpose", ""),
                    exam_date=deck.get("examDate", ""),
                    author=deck.get("author", "Anonymous"),
                )
                for q in deck.get("questions", []):
                    self.decks.add_question(deck_id, QuestionDraft.model_validate(q))
                created += 1

            self.telemetry.log_info(f"Seeded {created} decks.")
            return created
        except Exception as e:
            self.telemetry.log_error("Auto-seeding failed", e)
            return 0
