"""Share link helpers.

A link names the chat in its path and may carry the session key in the
URL fragment. Browsers and HTTP clients never send the fragment to a
server, so the store only ever learns the chat id.
"""

import base64
import binascii
from urllib.parse import urlsplit
from uuid import UUID

from burnchat.domain.chats import KEY_SIZE_BYTES, SessionKey
from burnchat.domain.errors import DecodingError

_KEY_PARAM = "key"


def build_chat_link(base_url: str, chat_id: UUID, key: SessionKey | None = None) -> str:
    """Build a share link for a chat, optionally embedding its key."""
    link = f"{base_url.rstrip('/')}/chat/{chat_id}"
    if key is None:
        return link
    encoded = base64.urlsafe_b64encode(key.material).rstrip(b"=").decode("ascii")
    return f"{link}#{_KEY_PARAM}={encoded}"


def parse_chat_link(link: str) -> tuple[UUID, SessionKey | None]:
    """Extract the chat id and optional key from a share link."""
    parts = urlsplit(link.strip())
    segments = [segment for segment in parts.path.split("/") if segment]
    if not segments:
        raise ValueError("Chat link has no chat id")
    chat_id = UUID(segments[-1])
    return chat_id, _parse_fragment_key(parts.fragment)


def _parse_fragment_key(fragment: str) -> SessionKey | None:
    for chunk in fragment.split("&"):
        name, _, value = chunk.partition("=")
        if name != _KEY_PARAM or not value:
            continue
        padded = value + "=" * (-len(value) % 4)
        try:
            material = base64.urlsafe_b64decode(padded)
        except (binascii.Error, ValueError) as exc:
            raise DecodingError("Chat link carries a malformed key") from exc
        if len(material) != KEY_SIZE_BYTES:
            raise DecodingError("Chat link carries a key of the wrong size")
        return SessionKey(material=material)
    return None
