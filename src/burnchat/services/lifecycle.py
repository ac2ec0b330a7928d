"""Message expiry and client-side visibility.

Everything here only governs what one client shows. Durable deletion is
done by the reaper job against the store; a message pruned here may still
exist there as ciphertext until the next cleanup run.
"""

import asyncio
import logging
import math
from collections.abc import Callable, Iterable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Generic, Protocol, TypeVar
from uuid import UUID

_logger = logging.getLogger(__name__)


class Expiring(Protocol):
    """Anything with an id and an absolute expiry."""

    @property
    def id(self) -> UUID: ...

    @property
    def expires_at(self) -> datetime: ...


T = TypeVar("T", bound=Expiring)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def expiry_of(created_at: datetime, ttl_seconds: int) -> datetime:
    """Return the absolute expiry for a TTL starting at ``created_at``."""
    if ttl_seconds <= 0:
        raise ValueError("TTL must be a positive number of seconds")
    return created_at + timedelta(seconds=ttl_seconds)


def prune(messages: Iterable[T], now: datetime) -> list[T]:
    """Keep only messages that have not expired at ``now``, in order."""
    return [message for message in messages if message.expires_at > now]


def seconds_remaining(expires_at: datetime, now: datetime) -> int:
    """Whole seconds left before expiry, rounded up and never negative."""
    remaining = (expires_at - now).total_seconds()
    return max(0, math.ceil(remaining))


class MessageTimeline(Generic[T]):
    """Ordered message view merging history and live events by id."""

    def __init__(self) -> None:
        self._messages: list[T] = []
        self._ids: set[UUID] = set()
        self._pruned_at: datetime | None = None

    def add(self, message: T) -> bool:
        """Append a message unless its id is present or it already expired."""
        if message.id in self._ids:
            return False
        if self._pruned_at is not None and message.expires_at <= self._pruned_at:
            return False
        self._ids.add(message.id)
        self._messages.append(message)
        return True

    def extend(self, messages: Iterable[T]) -> int:
        """Append several messages; returns how many were new."""
        return sum(1 for message in messages if self.add(message))

    def prune(self, now: datetime) -> list[T]:
        """Drop expired messages and return the ones removed."""
        if self._pruned_at is None or now > self._pruned_at:
            self._pruned_at = now
        kept = prune(self._messages, now)
        if len(kept) == len(self._messages):
            return []
        kept_ids = {message.id for message in kept}
        removed = [m for m in self._messages if m.id not in kept_ids]
        self._messages = kept
        # A late duplicate of a removed message is refused by the expiry check
        # in add(), so its id can be forgotten.
        self._ids = kept_ids
        return removed

    def __getitem__(self, index: int) -> T:
        return self._messages[index]

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[T]:
        return iter(self._messages)


class ExpiryWatcher:
    """Periodically prunes a timeline on the running event loop."""

    def __init__(
        self,
        timeline: MessageTimeline,
        interval_seconds: float = 1.0,
        on_expired: Callable[[list], None] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Prune interval must be positive")
        self.timeline = timeline
        self.interval_seconds = interval_seconds
        self.on_expired = on_expired
        self.clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return whether the watcher task is active."""
        return self._task is not None and not self._task.done()

    def tick(self) -> list:
        """Prune once and notify about removed messages."""
        removed = self.timeline.prune(self.clock())
        if removed:
            _logger.debug("Pruned expired messages: count=%s", len(removed))
            if self.on_expired is not None:
                self.on_expired(removed)
        return removed

    def start(self) -> None:
        """Start pruning in the background."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Stop the background task and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.tick()
            except Exception:
                _logger.exception("Expiry callback failed; pruning continues")
