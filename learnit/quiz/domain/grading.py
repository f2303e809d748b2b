from learnit.quiz.domain.models import Question, QuestionType


def normalize(text: str) -> str:
    return text.strip().lower()


def grade_choice(question: Question, selected: str) -> bool:
    """Exact, case-sensitive match against one of the offered options."""
    if not question.options or selected not in question.options:
        return False
    return selected == question.answer


def grade_free_text(question: Question, user_input: str) -> bool:
    """
    Case-insensitive trimmed match. For list answers the input may either
    equal the whole list joined with ", " (order matters) or any single item.
    """
    given = normalize(user_input)
    if not given:
        return False

    answer = question.answer
    if isinstance(answer, list):
        items = [normalize(a) for a in answer]
        if given == ", ".join(items):
            return True
        return given in items

    return given == normalize(answer)


def grade(question: Question, answer: str) -> bool:
    if question.type == QuestionType.MULTIPLE_CHOICE:
        return grade_choice(question, answer)
    return grade_free_text(question, answer)
