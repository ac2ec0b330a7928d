"""Chat session management: create, join, send, receive, terminate."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from burnchat.domain.chats import (
    ChatRecord,
    ChatState,
    DecryptedMessage,
    MessageKind,
    MessageRecord,
    SessionKey,
)
from burnchat.domain.errors import (
    ChatFullError,
    ChatNotFoundError,
    CreationError,
    DecryptionError,
    InvalidStateError,
    MissingKeyError,
)
from burnchat.services import crypto
from burnchat.services.identity import DeviceIdentity
from burnchat.services.keys import KeyManager
from burnchat.domain.links import build_chat_link
from burnchat.services.lifecycle import (
    ExpiryWatcher,
    MessageTimeline,
    expiry_of,
    utcnow,
)

_logger = logging.getLogger(__name__)

_IMAGE_PREFIX = "data:image/"


class ChatRepository(Protocol):
    """Persistence interface for chats, participants and messages."""

    def create_chat(
        self, max_participants: int, message_ttl_seconds: int, expires_at: datetime
    ) -> ChatRecord:
        """Insert a chat and return it with its generated id."""

    def get_open_chat(self, chat_id: UUID) -> ChatRecord | None:
        """Return a chat by id if it exists and is not terminated."""

    def count_participants(self, chat_id: UUID) -> int:
        """Return the number of participant rows for a chat."""

    def has_participant(self, chat_id: UUID, anonymous_id: str) -> bool:
        """Return whether a device is already recorded in a chat."""

    def add_participant(self, chat_id: UUID, anonymous_id: str) -> None:
        """Insert a participant row, ignoring an existing duplicate."""

    def create_message(  # noqa: PLR0913
        self,
        chat_id: UUID,
        encrypted_content: str,
        kind: MessageKind,
        sender_id: str,
        expires_at: datetime,
    ) -> MessageRecord:
        """Insert a message row and return it."""

    def list_messages(self, chat_id: UUID) -> list[MessageRecord]:
        """Return a chat's messages ordered by creation time."""

    def mark_terminated(self, chat_id: UUID) -> None:
        """Flag a chat as terminated."""


class Subscription(Protocol):
    """Handle for a live message subscription."""

    async def unsubscribe(self) -> None:
        """Stop delivery and release the channel."""


class MessageChannel(Protocol):
    """Realtime delivery of newly inserted message rows."""

    async def subscribe(
        self, chat_id: UUID, on_message: Callable[[MessageRecord], None]
    ) -> Subscription:
        """Deliver new messages of a chat to ``on_message`` in arrival order."""


@dataclass
class ChatContext:
    """State of one chat on this device."""

    chat_id: UUID
    anonymous_id: str
    state: ChatState = ChatState.UNINITIALIZED
    chat: ChatRecord | None = None
    key: SessionKey | None = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        """Return whether message operations are allowed."""
        return self.state == ChatState.ACTIVE


@dataclass
class ChatSubscription:
    """Live subscription that drops duplicates and stops cleanly."""

    context: ChatContext
    on_message: Callable[[DecryptedMessage], None]
    decrypt: Callable[[ChatContext, MessageRecord], DecryptedMessage]
    clock: Callable[[], datetime] = utcnow
    seen: dict[UUID, datetime] = field(default_factory=dict)
    handle: Subscription | None = None
    closed: bool = False

    def deliver(self, record: MessageRecord) -> None:
        """Decrypt one inbound row and hand it to the callback."""
        now = self.clock()
        if self.closed or record.id in self.seen or record.expires_at <= now:
            return
        # Expired rows are refused above, so their ids need not be kept.
        self.seen = {
            seen_id: expires_at
            for seen_id, expires_at in self.seen.items()
            if expires_at > now
        }
        self.seen[record.id] = record.expires_at
        try:
            message = self.decrypt(self.context, record)
        except (DecryptionError, MissingKeyError) as exc:
            _logger.warning(
                "Dropping undecryptable live message: chat_id=%s message_id=%s error=%s",
                record.chat_id,
                record.id,
                type(exc).__name__,
            )
            return
        self.on_message(message)

    async def unsubscribe(self) -> None:
        """Stop delivery; safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        if self.handle is not None:
            await self.handle.unsubscribe()
        _logger.info("Unsubscribed: chat_id=%s", self.context.chat_id)


@dataclass
class ChatService:
    """Coordinates keys, encryption and the store for one device."""

    repository: ChatRepository
    channel: MessageChannel
    key_manager: KeyManager
    identity: DeviceIdentity
    chat_ttl_seconds: int = 24 * 60 * 60
    lazy_key_creation: bool = False
    link_base_url: str = "http://localhost:8080"
    prune_interval_seconds: float = 1.0
    clock: Callable[[], datetime] = utcnow

    def open_context(self, chat_id: UUID) -> ChatContext:
        """Return a fresh, not yet joined context for a chat."""
        return ChatContext(chat_id=chat_id, anonymous_id=self.identity.anonymous_id())

    def create_chat(self, max_participants: int, message_ttl_seconds: int) -> UUID:
        """Create a chat, generate its key and return the chat id."""
        if max_participants < 1:
            raise CreationError("max_participants must be at least 1")
        if message_ttl_seconds < 1:
            raise CreationError("message_ttl_seconds must be at least 1")
        key = self.key_manager.create_key()
        chat = self.repository.create_chat(
            max_participants=max_participants,
            message_ttl_seconds=message_ttl_seconds,
            expires_at=self.clock() + timedelta(seconds=self.chat_ttl_seconds),
        )
        self.key_manager.store(chat.id, key)
        _logger.info(
            "Created chat: chat_id=%s max_participants=%s message_ttl_seconds=%s",
            chat.id,
            max_participants,
            message_ttl_seconds,
        )
        return chat.id

    def join_chat(
        self, context: ChatContext, key: SessionKey | None = None
    ) -> ChatRecord:
        """Join a chat, enforcing availability and capacity.

        A key passed in (usually from the share link) replaces any stored
        key. Any failure leaves the context ``INVALID``.
        """
        if context.state != ChatState.UNINITIALIZED:
            raise InvalidStateError(f"Cannot join from state {context.state.value}")
        context.state = ChatState.JOINING
        try:
            chat = self.repository.get_open_chat(context.chat_id)
            if chat is None or not chat.is_available(self.clock()):
                raise ChatNotFoundError("Chat not found or has been terminated")
            if not self.repository.has_participant(chat.id, context.anonymous_id):
                count = self.repository.count_participants(chat.id)
                if count >= chat.max_participants:
                    raise ChatFullError("Chat is full")
            resolved_key = self._resolve_key(chat.id, key)
            self.repository.add_participant(chat.id, context.anonymous_id)
        except Exception:
            context.state = ChatState.INVALID
            raise
        context.chat = chat
        context.key = resolved_key
        context.state = ChatState.ACTIVE
        _logger.info("Joined chat: chat_id=%s", chat.id)
        return chat

    def load_history(self, context: ChatContext) -> list[DecryptedMessage]:
        """Fetch and decrypt stored messages; undecryptable ones are dropped."""
        self._require_active(context)
        history: list[DecryptedMessage] = []
        for record in self.repository.list_messages(context.chat_id):
            try:
                history.append(self.decrypt_record(context, record))
            except (DecryptionError, MissingKeyError) as exc:
                _logger.warning(
                    "Dropping undecryptable message: chat_id=%s message_id=%s error=%s",
                    context.chat_id,
                    record.id,
                    type(exc).__name__,
                )
        return history

    def send_message(
        self,
        context: ChatContext,
        content: str,
        kind: MessageKind = MessageKind.TEXT,
    ) -> MessageRecord:
        """Encrypt and store a message. Failures are not retried."""
        chat = self._require_active(context)
        if kind == MessageKind.IMAGE and not content.startswith(_IMAGE_PREFIX):
            raise ValueError("Image messages must be data:image/ URIs")
        key = self._context_key(context)
        encrypted = crypto.encrypt_text(content, key)
        record = self.repository.create_message(
            chat_id=context.chat_id,
            encrypted_content=encrypted,
            kind=kind,
            sender_id=context.anonymous_id,
            expires_at=expiry_of(self.clock(), chat.message_ttl_seconds),
        )
        _logger.info(
            "Sent message: chat_id=%s kind=%s size=%s",
            context.chat_id,
            kind.value,
            len(encrypted),
        )
        return record

    def send_image(self, context: ChatContext, data_uri: str) -> MessageRecord:
        """Send a pre-encoded image data URI."""
        return self.send_message(context, data_uri, MessageKind.IMAGE)

    async def subscribe(
        self,
        context: ChatContext,
        on_message: Callable[[DecryptedMessage], None],
    ) -> ChatSubscription:
        """Attach to live messages of an active chat."""
        self._require_active(context)
        subscription = ChatSubscription(
            context=context,
            on_message=on_message,
            decrypt=self.decrypt_record,
            clock=self.clock,
        )
        subscription.handle = await self.channel.subscribe(
            context.chat_id, subscription.deliver
        )
        _logger.info("Subscribed: chat_id=%s", context.chat_id)
        return subscription

    def share_link(self, context: ChatContext) -> str:
        """Return the invite link for an active chat, carrying its key."""
        self._require_active(context)
        return build_chat_link(
            self.link_base_url, context.chat_id, self._context_key(context)
        )

    def watch_expiry(
        self,
        timeline: MessageTimeline[DecryptedMessage],
        on_expired: Callable[[list[DecryptedMessage]], None] | None = None,
    ) -> ExpiryWatcher:
        """Return a watcher that prunes ``timeline`` on this service's clock."""
        return ExpiryWatcher(
            timeline,
            interval_seconds=self.prune_interval_seconds,
            on_expired=on_expired,
            clock=self.clock,
        )

    def participant_count(self, context: ChatContext) -> int:
        """Return the number of devices recorded in the chat."""
        return self.repository.count_participants(context.chat_id)

    def terminate_chat(self, context: ChatContext) -> None:
        """End the chat for everyone and erase the local key.

        Terminating an already terminated context does nothing.
        """
        if context.state == ChatState.TERMINATED:
            return
        if context.state != ChatState.ACTIVE:
            raise InvalidStateError(
                f"Cannot terminate from state {context.state.value}"
            )
        context.state = ChatState.TERMINATING
        try:
            self.repository.mark_terminated(context.chat_id)
        except Exception:
            context.state = ChatState.ACTIVE
            raise
        self.key_manager.erase(context.chat_id)
        context.key = None
        context.state = ChatState.TERMINATED
        _logger.info("Terminated chat: chat_id=%s", context.chat_id)

    async def leave(
        self, context: ChatContext, subscription: ChatSubscription | None = None
    ) -> None:
        """Stop receiving messages without touching the chat or its members."""
        if subscription is not None:
            await subscription.unsubscribe()
        _logger.info("Left chat: chat_id=%s", context.chat_id)

    def decrypt_record(
        self, context: ChatContext, record: MessageRecord
    ) -> DecryptedMessage:
        """Turn a stored row into the view shown to this device."""
        key = self._context_key(context)
        payload = crypto.decrypt_text(record.encrypted_content, key)
        is_image = record.kind == MessageKind.IMAGE
        return DecryptedMessage(
            id=record.id,
            text="" if is_image else payload,
            timestamp=record.created_at,
            expires_at=record.expires_at,
            is_sent=record.sender_id == context.anonymous_id,
            image=payload if is_image else None,
        )

    def _resolve_key(self, chat_id: UUID, key: SessionKey | None) -> SessionKey:
        if key is not None:
            self.key_manager.store(chat_id, key)
            return key
        stored = self.key_manager.load(chat_id)
        if stored is not None:
            return stored
        if not self.lazy_key_creation:
            raise MissingKeyError("No key for this chat on this device")
        _logger.warning(
            "Creating an unrelated key for joined chat: chat_id=%s", chat_id
        )
        created = self.key_manager.create_key()
        self.key_manager.store(chat_id, created)
        return created

    def _context_key(self, context: ChatContext) -> SessionKey:
        if context.key is None:
            context.key = self._resolve_key(context.chat_id, None)
        return context.key

    def _require_active(self, context: ChatContext) -> ChatRecord:
        if not context.active or context.chat is None:
            raise InvalidStateError(
                f"Chat operation requires an active chat, not {context.state.value}"
            )
        return context.chat
