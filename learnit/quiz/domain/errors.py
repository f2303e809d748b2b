from typing import Any


class LearnItError(Exception):
    """Base class for every error the application raises on purpose."""


class ValidationError(LearnItError):
    """User input rejected before any write happened."""


class NotFoundError(LearnItError):
    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class PermissionDenied(LearnItError):
    pass


class BackendError(LearnItError):
    """A store, auth or storage call failed. Never retried."""

    def __init__(self, operation: str, cause: Exception | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"{operation} failed{detail}")
        self.operation = operation
        self.cause = cause


class ConfigurationError(LearnItError):
    pass


class GenerationError(LearnItError):
    pass


class TransitionRejected(LearnItError):
    """Raised by services when the session state machine refuses an intent."""

    def __init__(self, rejection: Any) -> None:
        super().__init__(
            f"{rejection.action.name} rejected: {rejection.reason.name}"
            f" ({rejection.detail})"
        )
        self.rejection = rejection

    @property
    def reason(self) -> Any:
        return self.rejection.reason
