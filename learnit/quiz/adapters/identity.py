import secrets
from collections.abc import Callable
from typing import Any, cast

from learnit.config import AppConfig
from learnit.quiz.adapters.listeners import CallbackSubscription
from learnit.quiz.domain.errors import BackendError, ValidationError
from learnit.quiz.domain.models import Identity
from learnit.quiz.domain.ports import IIdentityProvider, IStateProvider, Subscription
from learnit.shared.telemetry import Telemetry
from supabase import Client

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

IdentityCallback = Callable[[Identity | None], None]


def new_guest_uid() -> str:
    return "user_" + "".join(secrets.choice(_BASE36) for _ in range(9))


class GuestIdentityProvider(IIdentityProvider):
    """
    Unverified identity kept in client state: a generated uid plus a
    display name the user typed. The uid survives sign-out so a returning
    guest keeps their profile.
    """

    def __init__(self, state: IStateProvider) -> None:
        self.state = state
        self.telemetry = Telemetry("GuestIdentity")
        self._listeners: dict[int, IdentityCallback] = {}
        self._next_key = 0

    def sign_in_as_guest(self, name: str) -> Identity:
        name = name.strip()
        if not name:
            raise ValidationError("Please enter your name")

        if not self.state.get(AppConfig.GUEST_UID_KEY):
            self.state.set(AppConfig.GUEST_UID_KEY, new_guest_uid())
        self.state.set(AppConfig.GUEST_NAME_KEY, name)

        identity = cast(Identity, self.current_user())
        self.telemetry.log_info("Guest signed in", uid=self.state.get(AppConfig.GUEST_UID_KEY))
        self._notify(identity)
        return identity

    def current_user(self) -> Identity | None:
        name = self.state.get(AppConfig.GUEST_NAME_KEY)
        uid = self.state.get(AppConfig.GUEST_UID_KEY)
        if not name or not uid:
            return None
        return Identity(
            uid=uid,
            display_name=name,
            photo_url=self.state.get(AppConfig.GUEST_PHOTO_KEY) or None,
            is_guest=True,
        )

    def update_profile(self, display_name: str, photo_url: str | None = None) -> None:
        self.state.set(AppConfig.GUEST_NAME_KEY, display_name)
        if photo_url:
            self.state.set(AppConfig.GUEST_PHOTO_KEY, photo_url)
        self._notify(self.current_user())

    def sign_out(self) -> None:
        self.state.delete(AppConfig.GUEST_NAME_KEY)
        self._notify(None)

    def on_change(self, callback: IdentityCallback) -> Subscription:
        key = self._next_key
        self._next_key += 1
        self._listeners[key] = callback
        return CallbackSubscription(lambda: self._listeners.pop(key, None))

    def _notify(self, identity: Identity | None) -> None:
        for callback in list(self._listeners.values()):
            callback(identity)


class SupabaseIdentityProvider(IIdentityProvider):
    """Google sign-in through Supabase Auth (PKCE code exchange)."""

    def __init__(self, client: Client, provider: str = "google") -> None:
        self.client = client
        self.provider = provider
        self.telemetry = Telemetry("SupabaseIdentity")

    def sign_in_url(self, redirect_to: str) -> str:
        try:
            response = self.client.auth.sign_in_with_oauth(
                {"provider": self.provider, "options": {"redirect_to": redirect_to}}
            )
        except Exception as e:
            self.telemetry.log_error("OAuth sign-in failed", e)
            raise BackendError("sign_in", e) from e
        return str(response.url)

    def complete_sign_in(self, auth_code: str) -> Identity:
        try:
            response = self.client.auth.exchange_code_for_session(
                {"auth_code": auth_code}
            )
        except Exception as e:
            self.telemetry.log_error("Code exchange failed", e)
            raise BackendError("complete_sign_in", e) from e
        identity = self._to_identity(response.user)
        if identity is None:
            raise BackendError("complete_sign_in")
        self.telemetry.log_info("User signed in", uid=identity.uid)
        return identity

    def current_user(self) -> Identity | None:
        try:
            response = self.client.auth.get_user()
        except Exception as e:
            # An expired or missing session simply means nobody is signed in
            self.telemetry.log_warning("get_user failed", error=str(e))
            return None
        if response is None:
            return None
        return self._to_identity(response.user)

    def sign_out(self) -> None:
        try:
            self.client.auth.sign_out()
        except Exception as e:
            self.telemetry.log_error("Sign out failed", e)
            raise BackendError("sign_out", e) from e

    def on_change(self, callback: IdentityCallback) -> Subscription:
        def handler(event: Any, session: Any) -> None:
            user = getattr(session, "user", None) if session else None
            callback(self._to_identity(user))

        subscription = self.client.auth.on_auth_state_change(handler)
        return CallbackSubscription(subscription.unsubscribe)

    @staticmethod
    def _to_identity(user: Any) -> Identity | None:
        if user is None:
            return None
        metadata: dict[str, Any] = getattr(user, "user_metadata", None) or {}
        return Identity(
            uid=str(user.id),
            display_name=metadata.get("full_name") or metadata.get("name") or "",
            email=getattr(user, "email", None),
            photo_url=metadata.get("avatar_url"),
            is_guest=False,
        )
