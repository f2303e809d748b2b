import pytest

from learnit.quiz.domain.grading import grade, grade_choice, grade_free_text, normalize
from learnit.quiz.domain.models import Question, QuestionType


def make(type_: QuestionType, answer, options=None) -> Question:
    return Question(type=type_, question="?", answer=answer, options=options)


class TestMultipleChoice:
    def test_exact_option_is_correct(self):
        q = make(QuestionType.MULTIPLE_CHOICE, "Paris", ["Paris", "Rome"])
        assert grade_choice(q, "Paris") is True

    def test_case_sensitive(self):
        """Choices are compared exactly; a differently cased value is wrong."""
        q = make(QuestionType.MULTIPLE_CHOICE, "Paris", ["Paris", "Rome"])
        assert grade_choice(q, "paris") is False

    def test_value_outside_options_is_wrong_even_if_equal_to_answer(self):
        q = make(QuestionType.MULTIPLE_CHOICE, "Paris", ["Rome", "Berlin"])
        assert grade_choice(q, "Paris") is False

    def test_wrong_option(self):
        q = make(QuestionType.MULTIPLE_CHOICE, "Paris", ["Paris", "Rome"])
        assert grade(q, "Rome") is False


class TestFreeText:
    def test_identification_ignores_case_and_whitespace(self):
        q = make(QuestionType.IDENTIFICATION, "DNA")
        assert grade_free_text(q, "  dna ") is True

    def test_identification_wrong(self):
        q = make(QuestionType.IDENTIFICATION, "DNA")
        assert grade_free_text(q, "RNA") is False

    def test_empty_input_is_never_correct(self):
        q = make(QuestionType.IDENTIFICATION, "")
        assert grade_free_text(q, "   ") is False

    @pytest.mark.parametrize(
        "given, expected",
        [
            ("mitosis, meiosis", True),
            ("MITOSIS,  meiosis", False),  # join uses exactly ", "
            ("meiosis", True),
            ("Mitosis", True),
            ("meiosis, mitosis", False),
            ("binary fission", False),
        ],
    )
    def test_enumeration(self, given, expected):
        q = make(QuestionType.ENUMERATION, ["Mitosis", "Meiosis"])
        assert grade(q, given) is expected

    def test_enumeration_with_single_string_answer(self):
        q = make(QuestionType.ENUMERATION, "red, green")
        assert grade(q, "Red, Green") is True


def test_normalize():
    assert normalize("  HeLLo ") == "hello"
