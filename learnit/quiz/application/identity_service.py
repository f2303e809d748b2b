from learnit.quiz.adapters.identity import GuestIdentityProvider, SupabaseIdentityProvider
from learnit.quiz.domain.errors import PermissionDenied
from learnit.quiz.domain.models import Identity


class IdentityService:
    """The signed-in federated user wins; otherwise the guest identity, if any."""

    def __init__(
        self,
        guest: GuestIdentityProvider,
        federated: SupabaseIdentityProvider | None = None,
    ) -> None:
        self.guest = guest
        self.federated = federated

    @property
    def supports_federated(self) -> bool:
        return self.federated is not None

    def current_user(self) -> Identity | None:
        if self.federated is not None:
            user = self.federated.current_user()
            if user is not None:
                return user
        return self.guest.current_user()

    def require_user(self) -> Identity:
        user = self.current_user()
        if user is None:
            raise PermissionDenied("Sign in first")
        return user

    def sign_out(self) -> None:
        if self.federated is not None and self.federated.current_user() is not None:
            self.federated.sign_out()
        self.guest.sign_out()
