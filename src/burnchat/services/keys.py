"""Per-chat session key management.

Keys live only in local device storage, serialized as a JWK. Nothing in
this module logs or returns key material except through ``SessionKey``.
"""

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from uuid import UUID

from burnchat.domain.chats import KEY_SIZE_BYTES, SessionKey
from burnchat.domain.errors import DecodingError, EntropyError
from burnchat.services.storage import LocalStorage

_logger = logging.getLogger(__name__)

_KEY_ITEM_PREFIX = "burna_chat_key_"


def _item_name(chat_id: UUID) -> str:
    return f"{_KEY_ITEM_PREFIX}{chat_id}"


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def export_jwk(key: SessionKey) -> str:
    """Serialize a key as an AES-GCM JWK string."""
    return json.dumps(
        {
            "kty": "oct",
            "k": _b64url(key.material),
            "alg": "A256GCM",
            "ext": True,
            "key_ops": ["encrypt", "decrypt"],
        }
    )


def import_jwk(raw: str) -> SessionKey:
    """Parse a JWK string produced by ``export_jwk``."""
    try:
        data = json.loads(raw)
        if data.get("kty") != "oct":
            raise DecodingError("Stored key is not a symmetric JWK")
        encoded = str(data["k"])
        material = base64.urlsafe_b64decode(encoded + "=" * (-len(encoded) % 4))
    except (ValueError, KeyError, TypeError, AttributeError, binascii.Error) as exc:
        raise DecodingError("Stored key is malformed") from exc
    if len(material) != KEY_SIZE_BYTES:
        raise DecodingError("Stored key has the wrong size")
    return SessionKey(material=material)


@dataclass
class KeyManager:
    """Creates and persists the symmetric key of each chat."""

    storage: LocalStorage

    def create_key(self) -> SessionKey:
        """Generate a fresh 256-bit key."""
        try:
            material = os.urandom(KEY_SIZE_BYTES)
        except (NotImplementedError, OSError) as exc:
            raise EntropyError("Could not generate key material") from exc
        return SessionKey(material=material)

    def store(self, chat_id: UUID, key: SessionKey) -> None:
        """Persist a key for a chat, overwriting any previous one."""
        self.storage.set_item(_item_name(chat_id), export_jwk(key))
        _logger.info("Stored session key: chat_id=%s", chat_id)

    def load(self, chat_id: UUID) -> SessionKey | None:
        """Return the stored key for a chat, if any."""
        raw = self.storage.get_item(_item_name(chat_id))
        if raw is None:
            return None
        return import_jwk(raw)

    def erase(self, chat_id: UUID) -> None:
        """Remove the stored key for a chat."""
        self.storage.remove_item(_item_name(chat_id))
        _logger.info("Erased session key: chat_id=%s", chat_id)
