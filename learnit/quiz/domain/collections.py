DECKS = "decks"
SESSIONS = "sessions"
FEEDBACK = "feedback"
USERS = "users"


def questions_of(deck_id: str) -> str:
    return f"{DECKS}/{deck_id}/questions"
