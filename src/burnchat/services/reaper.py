"""Scheduled cleanup of expired and terminated rows."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from burnchat.services.lifecycle import utcnow

_logger = logging.getLogger(__name__)


class ReaperRepository(Protocol):
    """Store-side deletion primitives."""

    def delete_expired_messages(self) -> None:
        """Delete messages whose expiry has passed."""

    def delete_expired_chats(self) -> None:
        """Delete terminated or expired chats and their dependent rows."""


@dataclass(frozen=True)
class CleanupReport:
    """Outcome of one cleanup run."""

    messages_cleaned: bool
    chats_cleaned: bool
    timestamp: datetime

    @property
    def success(self) -> bool:
        """Return whether every step completed."""
        return self.messages_cleaned and self.chats_cleaned


@dataclass
class ReaperService:
    """Runs both deletion steps; one failing step does not skip the other."""

    repository: ReaperRepository

    def run_cleanup(self) -> CleanupReport:
        """Delete expired messages, then expired and terminated chats."""
        _logger.info("Starting cleanup")
        messages_cleaned = self._run_step(
            "messages", self.repository.delete_expired_messages
        )
        chats_cleaned = self._run_step("chats", self.repository.delete_expired_chats)
        return CleanupReport(
            messages_cleaned=messages_cleaned,
            chats_cleaned=chats_cleaned,
            timestamp=utcnow(),
        )

    def _run_step(self, name: str, step) -> bool:  # type: ignore[no-untyped-def]
        try:
            step()
        except Exception:
            _logger.exception("Cleanup step failed: step=%s", name)
            return False
        _logger.info("Cleanup step finished: step=%s", name)
        return True
