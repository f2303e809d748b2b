import pytest

from learnit.quiz.application.review_service import SoloReview
from learnit.quiz.domain.errors import ValidationError


@pytest.fixture
def review(decks, profiles, capitals_deck):
    return SoloReview(decks.get_questions(capitals_deck), uid="u1", profiles=profiles)


def test_perfect_run_updates_profile(review, profiles):
    assert review.answer("Paris") is True
    review.next()
    assert review.answer("Rome") is True
    review.next()
    assert review.answer("mitosis, meiosis") is True
    assert review.next() is None

    assert review.finished is True
    summary = review.summary()
    assert (summary.correct, summary.answered, summary.total) == (3, 3, 3)
    assert summary.percentage == 100
    assert profiles.get_profile("u1").total_correct_answers == 3


def test_wrong_answer_and_give_up(review, profiles):
    assert review.answer("Rome") is False
    review.next()
    review.give_up()
    review.next()
    assert review.answer("Meiosis") is True

    summary = review.summary()
    assert (summary.correct, summary.answered) == (1, 3)
    assert summary.percentage == 33
    assert review.attempts[1].gave_up is True
    assert profiles.get_profile("u1").total_correct_answers == 1


def test_one_attempt_per_question(review):
    review.answer("Rome")
    with pytest.raises(ValidationError):
        review.answer("Paris")
    with pytest.raises(ValidationError):
        review.give_up()


def test_multiple_choice_is_exact(review):
    assert review.answer("paris") is False


def test_blank_answer_rejected(review):
    with pytest.raises(ValidationError):
        review.answer("  ")
    assert review.current_attempt() is None


def test_restart(review):
    review.answer("Paris")
    review.next()
    review.restart()

    assert review.index == 0
    assert review.summary().answered == 0
    assert review.current().question == "Capital of France?"


def test_anonymous_review_skips_profile(decks, capitals_deck, store):
    review = SoloReview(decks.get_questions(capitals_deck))
    assert review.answer("Paris") is True
    assert store.query("users") == []


def test_answer_after_finish(decks, capitals_deck):
    review = SoloReview(decks.get_questions(capitals_deck)[:1])
    review.next()
    with pytest.raises(ValidationError):
        review.answer("Paris")
