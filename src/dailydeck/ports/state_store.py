"""State store interface."""

from typing import Any, Protocol


class StateStore(Protocol):
    """
    Interface for persisting deck state documents.

    Keys are the logical resources: "catalog", "deck", "templates", "history".
    Documents are plain JSON-compatible data.
    """

    def load(self, key: str) -> Any | None:
        """Load a document. Returns None if it was never saved."""
        ...

    def save(self, key: str, data: Any) -> None:
        """Write/overwrite a document."""
        ...
