"""Supabase Realtime adapter for live message delivery."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import UUID

from supabase import AsyncClient, acreate_client

from burnchat.adapters.supabase_rows import MESSAGES_TABLE, message_from_row
from burnchat.domain.chats import MessageRecord
from burnchat.services.chats import MessageChannel, Subscription

_logger = logging.getLogger(__name__)


def extract_record(payload: dict[str, object]) -> dict[str, object] | None:
    """Return the inserted row from a postgres_changes payload."""
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("record"), dict):
        return data["record"]
    for key in ("new", "record"):
        value = payload.get(key)
        if isinstance(value, dict):
            return value
    return None


@dataclass
class RealtimeSubscription(Subscription):
    """Handle wrapping one realtime channel."""

    channel: object
    remove: Callable[[object], Awaitable[None]]

    async def unsubscribe(self) -> None:
        """Remove the channel from the realtime client."""
        await self.remove(self.channel)


@dataclass
class SupabaseRealtimeChannel(MessageChannel):
    """Subscribes to message inserts filtered by chat id.

    The async client is created on first use since realtime delivery is
    only available on the async Supabase client.
    """

    supabase_url: str
    supabase_key: str
    client_factory: Callable[[str, str], Awaitable[AsyncClient]] = acreate_client
    _client: AsyncClient | None = field(default=None, init=False, repr=False)

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await self.client_factory(
                self.supabase_url, self.supabase_key
            )
        return self._client

    async def subscribe(
        self, chat_id: UUID, on_message: Callable[[MessageRecord], None]
    ) -> Subscription:
        """Subscribe to INSERT events on ``messages`` for one chat."""
        client = await self._get_client()

        def handle(payload: dict[str, object]) -> None:
            row = extract_record(payload)
            if row is None:
                _logger.warning("Realtime payload without record: chat_id=%s", chat_id)
                return
            try:
                record = message_from_row(row)
            except (KeyError, TypeError, ValueError):
                _logger.warning("Malformed realtime row: chat_id=%s", chat_id)
                return
            on_message(record)

        channel = client.channel(f"messages-{chat_id}")
        channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table=MESSAGES_TABLE,
            filter=f"chat_id=eq.{chat_id}",
            callback=handle,
        )
        await channel.subscribe()
        return RealtimeSubscription(channel=channel, remove=client.remove_channel)

    async def close(self) -> None:
        """Drop every channel and the realtime connection."""
        if self._client is None:
            return
        await self._client.remove_all_channels()
        self._client = None
