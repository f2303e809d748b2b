import json
from pathlib import Path

from learnit.quiz.adapters.seeder import DataSeeder

DEMO_SEED = Path(__file__).resolve().parents[2] / "data" / "seed_deck_demo.json"


def write_seed(tmp_path) -> str:
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps(
            [
                {
                    "title": "Demo",
                    "subject": "Testing",
                    "questions": [
                        {
                            "type": "MULTIPLE_CHOICE",
                            "question": "1+1?",
                            "options": ["1", "2"],
                            "answer": "2",
                        },
                        {"type": "IDENTIFICATION", "question": "Capital of Peru?", "answer": "Lima"},
                    ],
                }
            ]
        ),
        encoding="utf-8",
    )
    return str(path)


def test_seeds_empty_store(decks, tmp_path):
    created = DataSeeder(decks).seed_if_empty(write_seed(tmp_path))

    assert created == 1
    deck = decks.list_decks()[0]
    assert deck.title == "Demo"
    assert deck.question_count == 2


def test_skips_when_decks_exist(decks, tmp_path):
    decks.create_deck("Existing", "Stuff")
    assert DataSeeder(decks).seed_if_empty(write_seed(tmp_path)) == 0
    assert len(decks.list_decks()) == 1


def test_missing_seed_file(decks, tmp_path):
    assert DataSeeder(decks).seed_if_empty(str(tmp_path / "nope.json")) == 0
    assert decks.list_decks() == []


def test_bundled_demo_deck_is_valid(decks):
    assert DataSeeder(decks).seed_if_empty(str(DEMO_SEED)) == 2
