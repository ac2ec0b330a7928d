"""Row conversion and query execution shared by the Supabase adapters."""

from datetime import UTC, datetime
from uuid import UUID

import httpx
from postgrest.exceptions import APIError

from burnchat.domain.chats import ChatRecord, MessageKind, MessageRecord
from burnchat.domain.errors import StoreUnavailableError

CHATS_TABLE = "chats"
PARTICIPANTS_TABLE = "chat_participants"
MESSAGES_TABLE = "messages"


def execute(query, action: str):  # type: ignore[no-untyped-def]
    """Run a query builder, mapping store failures to ``StoreUnavailableError``."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StoreUnavailableError(f"Store failed to {action}") from exc


def parse_timestamp(raw: object) -> datetime:
    """Parse an ISO timestamp from a row; naive values are taken as UTC."""
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str) and raw:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Missing timestamp: {raw!r}")
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def chat_from_row(row: dict[str, object]) -> ChatRecord:
    """Build a chat record from a ``chats`` row."""
    return ChatRecord(
        id=UUID(str(row["id"])),
        max_participants=int(row["max_users"]),
        message_ttl_seconds=int(row["message_lifespan_seconds"]),
        created_at=parse_timestamp(row.get("created_at")),
        expires_at=parse_timestamp(row.get("expires_at")),
        terminated=bool(row.get("is_terminated", False)),
    )


def message_from_row(row: dict[str, object]) -> MessageRecord:
    """Build a message record from a ``messages`` row."""
    return MessageRecord(
        id=UUID(str(row["id"])),
        chat_id=UUID(str(row["chat_id"])),
        encrypted_content=str(row["encrypted_content"]),
        kind=MessageKind(row.get("message_type", MessageKind.TEXT.value)),
        sender_id=str(row["sender_id"]),
        created_at=parse_timestamp(row.get("created_at")),
        expires_at=parse_timestamp(row.get("expires_at")),
    )
