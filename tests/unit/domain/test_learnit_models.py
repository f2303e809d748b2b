from learnit.quiz.domain.models import (
    Deck,
    GameSession,
    Player,
    Question,
    QuestionType,
    UserProfile,
)


class TestDocumentMapping:
    def test_dump_uses_camel_case_and_drops_id(self):
        deck = Deck(id="D1", title="T", subject="S", exam_date="2025-01-01")
        doc = deck.to_document()

        assert "id" not in doc
        assert doc["examDate"] == "2025-01-01"
        assert doc["questionCount"] == 0
        assert "createdAt" in doc

    def test_load_from_camel_case(self):
        session = GameSession.model_validate(
            {
                "id": "S1",
                "deckId": "D1",
                "hostId": "h",
                "status": "PLAYING",
                "currentQuestionIndex": 2,
                "showAnswer": True,
                "players": {"p1": {"id": "p1", "name": "Ann", "hasSubmitted": True}},
            }
        )
        assert session.current_question_index == 2
        assert session.players["p1"].has_submitted is True

    def test_profile_photo_alias(self):
        profile = UserProfile(id="u1", photo_url="http://x/p.png")
        assert profile.to_document()["photoURL"] == "http://x/p.png"


class TestGameSessionHelpers:
    def _session(self) -> GameSession:
        return GameSession(
            deck_id="D1",
            host_id="h",
            players={
                "a": Player(id="a", name="Zed", score=100, has_submitted=True),
                "b": Player(id="b", name="Amy", score=100),
                "c": Player(id="c", name="Bob", score=300, has_submitted=True),
            },
        )

    def test_ranked_players_by_score_then_name(self):
        ranked = [p.name for p in self._session().ranked_players()]
        assert ranked == ["Bob", "Amy", "Zed"]

    def test_submission_counters(self):
        session = self._session()
        assert session.submission_count() == 2
        assert session.all_submitted() is False

        session.players["b"].has_submitted = True
        assert session.all_submitted() is True

    def test_empty_session_is_not_all_submitted(self):
        assert GameSession(deck_id="D", host_id="h").all_submitted() is False


def test_answer_text_joins_lists():
    q = Question(type=QuestionType.ENUMERATION, question="?", answer=["A", "B"])
    assert q.answer_text() == "A, B"
