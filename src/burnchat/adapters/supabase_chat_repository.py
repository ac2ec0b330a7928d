"""Supabase-backed chat repository."""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from burnchat.adapters.supabase_rows import (
    CHATS_TABLE,
    MESSAGES_TABLE,
    PARTICIPANTS_TABLE,
    chat_from_row,
    execute,
    message_from_row,
)
from burnchat.domain.chats import ChatRecord, MessageKind, MessageRecord
from burnchat.domain.errors import CreationError
from burnchat.services.chats import ChatRepository

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseChatRepository(ChatRepository):
    """Supabase implementation for chats, participants and messages."""

    client: Client

    def create_chat(
        self, max_participants: int, message_ttl_seconds: int, expires_at: datetime
    ) -> ChatRecord:
        """Insert a chat row and return it."""
        response = execute(
            self.client.table(CHATS_TABLE).insert(
                {
                    "max_users": max_participants,
                    "message_lifespan_seconds": message_ttl_seconds,
                    "expires_at": expires_at.isoformat(),
                }
            ),
            "create chat",
        )
        if not response.data:
            raise CreationError("Failed to create chat")
        return chat_from_row(response.data[0])

    def get_open_chat(self, chat_id: UUID) -> ChatRecord | None:
        """Return a non-terminated chat by id, if present."""
        response = execute(
            self.client.table(CHATS_TABLE)
            .select("*")
            .eq("id", str(chat_id))
            .eq("is_terminated", False)
            .limit(1),
            "load chat",
        )
        if not response.data:
            return None
        return chat_from_row(response.data[0])

    def count_participants(self, chat_id: UUID) -> int:
        """Return the exact participant count for a chat."""
        response = execute(
            self.client.table(PARTICIPANTS_TABLE)
            .select("*", count="exact", head=True)
            .eq("chat_id", str(chat_id)),
            "count participants",
        )
        return response.count or 0

    def has_participant(self, chat_id: UUID, anonymous_id: str) -> bool:
        """Return whether a device already has a participant row."""
        response = execute(
            self.client.table(PARTICIPANTS_TABLE)
            .select("anonymous_id")
            .eq("chat_id", str(chat_id))
            .eq("anonymous_id", anonymous_id)
            .limit(1),
            "load participant",
        )
        return bool(response.data)

    def add_participant(self, chat_id: UUID, anonymous_id: str) -> None:
        """Upsert a participant row keyed on chat and anonymous id."""
        execute(
            self.client.table(PARTICIPANTS_TABLE).upsert(
                {"chat_id": str(chat_id), "anonymous_id": anonymous_id},
                on_conflict="chat_id,anonymous_id",
                ignore_duplicates=True,
            ),
            "add participant",
        )

    def create_message(  # noqa: PLR0913
        self,
        chat_id: UUID,
        encrypted_content: str,
        kind: MessageKind,
        sender_id: str,
        expires_at: datetime,
    ) -> MessageRecord:
        """Insert a message row and return it."""
        response = execute(
            self.client.table(MESSAGES_TABLE).insert(
                {
                    "chat_id": str(chat_id),
                    "encrypted_content": encrypted_content,
                    "message_type": kind.value,
                    "sender_id": sender_id,
                    "expires_at": expires_at.isoformat(),
                }
            ),
            "send message",
        )
        if not response.data:
            raise CreationError("Failed to store message")
        return message_from_row(response.data[0])

    def list_messages(self, chat_id: UUID) -> list[MessageRecord]:
        """Return messages for a chat in ascending creation order.

        Rows that cannot be read are logged and skipped.
        """
        response = execute(
            self.client.table(MESSAGES_TABLE)
            .select("*")
            .eq("chat_id", str(chat_id))
            .order("created_at", desc=False),
            "load messages",
        )
        messages: list[MessageRecord] = []
        for row in response.data or []:
            try:
                messages.append(message_from_row(row))
            except (KeyError, TypeError, ValueError):
                _logger.warning(
                    "Skipping malformed message row: chat_id=%s message_id=%s",
                    chat_id,
                    row.get("id"),
                )
        return messages

    def mark_terminated(self, chat_id: UUID) -> None:
        """Set ``is_terminated`` on a chat."""
        execute(
            self.client.table(CHATS_TABLE)
            .update({"is_terminated": True})
            .eq("id", str(chat_id)),
            "terminate chat",
        )
