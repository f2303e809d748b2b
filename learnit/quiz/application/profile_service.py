from learnit.config import AppConfig
from learnit.quiz.adapters.identity import GuestIdentityProvider
from learnit.quiz.application.deck_service import DeckService
from learnit.quiz.domain.collections import USERS
from learnit.quiz.domain.errors import NotFoundError, ValidationError
from learnit.quiz.domain.models import Identity, UserProfile, now_ms
from learnit.quiz.domain.ports import IBlobStore, IDocumentStore
from learnit.shared.telemetry import Telemetry, measure_time


class ProfileService:
    """User profiles, the global leaderboard and profile pictures."""

    def __init__(
        self,
        store: IDocumentStore,
        decks: DeckService,
        blobs: IBlobStore,
        guest: GuestIdentityProvider,
    ) -> None:
        self.store = store
        self.decks = decks
        self.blobs = blobs
        self.guest = guest
        self.telemetry = Telemetry("ProfileService")

    def get_profile(self, uid: str) -> UserProfile | None:
        data = self.store.get(USERS, uid)
        return UserProfile.model_validate(data) if data else None

    def ensure_profile(self, identity: Identity) -> UserProfile:
        profile = self.get_profile(identity.uid)
        if profile is not None:
            return profile

        profile = UserProfile(
            id=identity.uid,
            display_name=identity.display_name,
            photo_url=identity.photo_url or "",
        )
        self.store.set(USERS, identity.uid, profile.to_document())
        self.telemetry.log_info("Profile created", uid=identity.uid)
        return profile

    @measure_time("save_profile")
    def save_profile(
        self, identity: Identity, display_name: str, photo_url: str | None = None
    ) -> None:
        display_name = display_name.strip()
        if not display_name:
            raise ValidationError("Please enter a username")

        fields: dict = {"displayName": display_name, "updatedAt": now_ms()}
        if photo_url:
            fields["photoURL"] = photo_url
        self.store.set(USERS, identity.uid, fields, merge=True)
        if identity.is_guest:
            self.guest.update_profile(display_name, photo_url)

    @measure_time("upload_profile_picture")
    def upload_profile_picture(self, uid: str, data: bytes, content_type: str) -> str:
        if not content_type.startswith("image/"):
            raise ValidationError("Please select an image file")
        if len(data) > AppConfig.MAX_PROFILE_PICTURE_BYTES:
            raise ValidationError("Image size should be less than 5MB")

        return self.blobs.upload(f"profile_pictures/{uid}", data, content_type)

    def record_correct_answer(self, uid: str) -> None:
        try:
            self.store.increment(USERS, uid, "totalCorrectAnswers", 1)
        except NotFoundError:
            self.store.set(
                USERS,
                uid,
                UserProfile(id=uid, total_correct_answers=1).to_document(),
            )

    def leaderboard(self, limit: int = AppConfig.LEADERBOARD_SIZE) -> list[UserProfile]:
        rows = self.store.query(
            USERS, order_by="totalCorrectAnswers", descending=True, limit=limit
        )
        return [UserProfile.model_validate(r) for r in rows]

    @measure_time("recalculate_contributions")
    def recalculate_contributions(self, uid: str, username: str) -> int:
        """Counts questions authored under `username` across every deck."""
        count = sum(
            1
            for deck in self.decks.list_decks()
            for question in self.decks.get_questions(deck.id)
            if question.author == username
        )
        self.store.set(
            USERS,
            uid,
            {"questionsContributed": count, "updatedAt": now_ms()},
            merge=True,
        )
        return count
