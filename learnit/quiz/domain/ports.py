from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from learnit.quiz.domain.models import GeneratedQuestion, Identity

DocumentData = dict[str, Any]
DocumentCallback = Callable[[DocumentData | None], None]
CollectionCallback = Callable[[list[DocumentData]], None]


class Subscription(ABC):
    """Handle returned by every watch/listen call."""

    @abstractmethod
    def cancel(self) -> None:
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        pass


class IDocumentStore(ABC):
    """
    Collections are slash paths ("decks", "decks/<id>/questions").
    Documents come back as plain dicts that always include their "id".
    """

    @abstractmethod
    def add(self, collection: str, data: DocumentData) -> str:
        """Creates a document with a generated id and returns the id."""
        pass

    @abstractmethod
    def set(
        self, collection: str, doc_id: str, data: DocumentData, merge: bool = False
    ) -> None:
        pass

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> DocumentData | None:
        pass

    @abstractmethod
    def query(
        self,
        collection: str,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        where: dict[str, Any] | None = None,
    ) -> list[DocumentData]:
        pass

    @abstractmethod
    def is_empty(self, collection: str) -> bool:
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: DocumentData) -> None:
        """
        Merge update. Keys are dotted paths ("players.u1.score").
        Raises NotFoundError when the document does not exist.
        """
        pass

    @abstractmethod
    def increment(
        self, collection: str, doc_id: str, field_path: str, amount: int = 1
    ) -> None:
        """Atomic numeric increment of a dotted path (missing value counts as 0)."""
        pass

    @abstractmethod
    def apply_if(
        self,
        collection: str,
        doc_id: str,
        expected: DocumentData,
        fields: DocumentData,
        increments: dict[str, int] | None = None,
    ) -> bool:
        """
        Compare-and-apply in one atomic step. Every `expected` dotted path
        must hold its value (None also matches a missing path); then `fields`
        are merged and `increments` added. Returns False and writes nothing
        when a precondition fails. Raises NotFoundError for a missing document.
        """
        pass

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        pass

    @abstractmethod
    def watch_document(
        self, collection: str, doc_id: str, callback: DocumentCallback
    ) -> Subscription:
        """
        Calls back immediately with the current state, then after every change.
        A deleted (or missing) document is reported as None.
        """
        pass

    @abstractmethod
    def watch_collection(
        self,
        collection: str,
        callback: CollectionCallback,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> Subscription:
        pass


class IStateProvider(ABC):
    """Per-client key/value state (browser session, device storage)."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class IIdentityProvider(ABC):
    @abstractmethod
    def current_user(self) -> Identity | None:
        pass

    @abstractmethod
    def sign_out(self) -> None:
        pass

    @abstractmethod
    def on_change(self, callback: Callable[[Identity | None], None]) -> Subscription:
        pass


class IBlobStore(ABC):
    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """Stores the bytes (overwriting) and returns a retrievable URL."""
        pass


class IQuestionGenerator(ABC):
    @abstractmethod
    def generate(
        self, topic: str, purpose: str, count: int = 3
    ) -> list[GeneratedQuestion]:
        pass
