"""Local device storage interface."""

from typing import Protocol


class LocalStorage(Protocol):
    """String key-value storage scoped to this device."""

    def get_item(self, name: str) -> str | None:
        """Return a stored value, if present."""

    def set_item(self, name: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    def remove_item(self, name: str) -> None:
        """Remove a stored value. Missing items are ignored."""
