import os
from enum import Enum
from typing import Final


class QuestionKind(Enum):
    # Enum Member = ("Stored Value", "Label", "Icon")
    MULTIPLE_CHOICE = ("MULTIPLE_CHOICE", "Multiple Choice", "🔘")
    IDENTIFICATION = ("IDENTIFICATION", "Identification", "✏️")
    ENUMERATION = ("ENUMERATION", "Enumeration", "📋")

    def __init__(self, stored: str, label: str, icon: str):
        self.stored = stored
        self.label = label
        self.icon = icon

    @classmethod
    def get_label(cls, stored: str) -> str:
        """Returns the UI label for a stored question type, or the raw value."""
        for kind in cls:
            if kind.stored == stored:
                return kind.label
        return stored

    @classmethod
    def all_values(cls) -> list[str]:
        return [k.stored for k in cls]


class AppConfig:
    # --- App Identity ---
    APP_TITLE = "LearnIt"
    APP_ICON = "🧠"

    # --- Live Session Rules ---
    POINTS_PER_CORRECT: Final[int] = 100
    AUTO_REVEAL_DELAY_S: Final[float] = 0.5
    AUTO_ADVANCE_DELAY_S: Final[float] = 5.0
    MINI_LEADERBOARD_SIZE: Final[int] = 5
    LEADERBOARD_SIZE: Final[int] = 10

    # --- Profiles ---
    MAX_PROFILE_PICTURE_BYTES: Final[int] = 5 * 1024 * 1024

    # --- Question Generation ---
    GEMINI_MODEL = "gemini-2.5-flash"
    GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models"
    GEMINI_TIMEOUT_S = 60
    DEFAULT_GENERATED_COUNT: Final[int] = 3
    GENERATED_AUTHOR = "Gemini AI"

    # --- Guest Identity (client-state keys) ---
    GUEST_UID_KEY = "collab_uid"
    GUEST_NAME_KEY = "collab_username"
    GUEST_PHOTO_KEY = "collab_photoURL"

    SEED_FILE = "data/seed_deck_demo.json"

    # --- Infrastructure Switch ---
    @staticmethod
    def backend() -> str:
        """'sqlite' (local development) or 'supabase'."""
        return os.getenv("LEARNIT_BACKEND", "sqlite").strip().lower()

    @staticmethod
    def db_path() -> str:
        return os.getenv("LEARNIT_DB_PATH", "data/learnit.db")

    @staticmethod
    def upload_dir() -> str:
        return os.getenv("LEARNIT_UPLOAD_DIR", "data/uploads")

    @staticmethod
    def supabase_url() -> str | None:
        return os.getenv("SUPABASE_URL")

    @staticmethod
    def supabase_key() -> str | None:
        return os.getenv("SUPABASE_KEY")

    @staticmethod
    def supabase_bucket() -> str:
        return os.getenv("SUPABASE_BUCKET", "profile-pictures")

    @staticmethod
    def gemini_api_key() -> str | None:
        return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")

    @staticmethod
    def auto_progress_enabled() -> bool:
        return os.getenv("LEARNIT_AUTO_PROGRESS", "true").strip().lower() in (
            "1",
            "true",
            "yes",
            "on",
        )

    @staticmethod
    def poll_interval_s() -> float:
        try:
            return float(os.getenv("LEARNIT_POLL_INTERVAL_S", "1.0"))
        except ValueError:
            return 1.0
