from unittest.mock import patch

from learnit.config import AppConfig, QuestionKind
from learnit.quiz.domain.models import QuestionType


class TestQuestionKind:
    def test_stored_values_match_question_types(self):
        assert set(QuestionKind.all_values()) == {t.value for t in QuestionType}

    def test_get_label(self):
        assert QuestionKind.get_label("MULTIPLE_CHOICE") == "Multiple Choice"

    def test_get_label_falls_back_to_raw_value(self):
        assert QuestionKind.get_label("ESSAY") == "ESSAY"


class TestAppConfig:
    def test_game_rules(self):
        assert AppConfig.POINTS_PER_CORRECT == 100
        assert AppConfig.AUTO_REVEAL_DELAY_S < AppConfig.AUTO_ADVANCE_DELAY_S
        assert AppConfig.MAX_PROFILE_PICTURE_BYTES == 5 * 1024 * 1024

    def test_backend_defaults_to_sqlite(self):
        with patch.dict("os.environ", {}, clear=True):
            assert AppConfig.backend() == "sqlite"

    def test_backend_from_env(self):
        with patch.dict("os.environ", {"LEARNIT_BACKEND": " Supabase "}):
            assert AppConfig.backend() == "supabase"

    def test_gemini_key_falls_back_to_api_key(self):
        with patch.dict("os.environ", {"API_KEY": "k2"}, clear=True):
            assert AppConfig.gemini_api_key() == "k2"
        with patch.dict("os.environ", {"GEMINI_API_KEY": "k1", "API_KEY": "k2"}, clear=True):
            assert AppConfig.gemini_api_key() == "k1"

    def test_auto_progress_switch(self):
        with patch.dict("os.environ", {"LEARNIT_AUTO_PROGRESS": "off"}):
            assert AppConfig.auto_progress_enabled() is False
        with patch.dict("os.environ", {}, clear=True):
            assert AppConfig.auto_progress_enabled() is True

    def test_invalid_poll_interval_uses_default(self):
        with patch.dict("os.environ", {"LEARNIT_POLL_INTERVAL_S": "soon"}):
            assert AppConfig.poll_interval_s() == 1.0
