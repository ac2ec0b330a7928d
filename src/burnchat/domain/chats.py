"""Domain models for ephemeral chats."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

KEY_SIZE_BYTES = 32


class MessageKind(str, Enum):
    """Payload type carried by a message."""

    TEXT = "text"
    IMAGE = "image"


class ChatState(str, Enum):
    """Lifecycle of a chat as seen from one device."""

    UNINITIALIZED = "UNINITIALIZED"
    JOINING = "JOINING"
    ACTIVE = "ACTIVE"
    TERMINATING = "TERMINATING"
    TERMINATED = "TERMINATED"
    INVALID = "INVALID"


@dataclass(frozen=True)
class ChatRecord:
    """Represents a persisted chat."""

    id: UUID
    max_participants: int
    message_ttl_seconds: int
    created_at: datetime
    expires_at: datetime
    terminated: bool

    def is_expired(self, now: datetime) -> bool:
        """Return whether the chat's own lifetime has elapsed."""
        return self.expires_at <= now

    def is_available(self, now: datetime) -> bool:
        """Return whether the chat can still be joined."""
        return not self.terminated and not self.is_expired(now)


@dataclass(frozen=True)
class MessageRecord:
    """Represents a stored message row; content is ciphertext only."""

    id: UUID
    chat_id: UUID
    encrypted_content: str
    kind: MessageKind
    sender_id: str
    created_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class DecryptedMessage:
    """View of a message after decryption on this device."""

    id: UUID
    text: str
    timestamp: datetime
    expires_at: datetime
    is_sent: bool
    image: str | None = None

    @property
    def kind(self) -> MessageKind:
        """Return the payload type of the message."""
        return MessageKind.IMAGE if self.image is not None else MessageKind.TEXT


@dataclass(frozen=True)
class SessionKey:
    """Symmetric key for one chat. Material is kept out of reprs."""

    material: bytes = field(repr=False)
