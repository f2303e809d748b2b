from dataclasses import dataclass

from learnit.quiz.adapters.identity import GuestIdentityProvider, SupabaseIdentityProvider
from learnit.quiz.application.deck_service import DeckService
from learnit.quiz.application.feedback_service import FeedbackService
from learnit.quiz.application.identity_service import IdentityService
from learnit.quiz.application.profile_service import ProfileService
from learnit.quiz.application.session_service import LiveSessionService
from learnit.quiz.domain.ports import IStateProvider


@dataclass
class AppContext:
    """Everything a screen needs, wired once per script run."""

    state: IStateProvider
    decks: DeckService
    sessions: LiveSessionService
    feedback: FeedbackService
    profiles: ProfileService
    identity: IdentityService
    guest: GuestIdentityProvider
    federated: SupabaseIdentityProvider | None = None
