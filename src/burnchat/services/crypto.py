"""Authenticated encryption of single message payloads.

AES-256-GCM with a fresh random 96-bit nonce per call. The ciphertext
returned by ``encrypt`` carries the 16-byte authentication tag at its end.
For storage the pair is packed into a JSON envelope of two base64 fields.
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from burnchat.domain.chats import SessionKey
from burnchat.domain.errors import AuthenticationError, DecodingError, EntropyError

NONCE_SIZE = 12


@dataclass(frozen=True)
class EncryptedPayload:
    """Ciphertext (tag included) and the nonce used to produce it."""

    ciphertext: bytes
    nonce: bytes


def encrypt(plaintext: bytes, key: SessionKey) -> EncryptedPayload:
    """Encrypt bytes under a key with a fresh nonce."""
    try:
        nonce = os.urandom(NONCE_SIZE)
    except (NotImplementedError, OSError) as exc:
        raise EntropyError("Could not generate nonce") from exc
    ciphertext = AESGCM(key.material).encrypt(nonce, plaintext, None)
    return EncryptedPayload(ciphertext=ciphertext, nonce=nonce)


def decrypt(payload: EncryptedPayload, key: SessionKey) -> bytes:
    """Decrypt and authenticate a payload."""
    if len(payload.nonce) != NONCE_SIZE:
        raise DecodingError("Nonce has the wrong size")
    try:
        return AESGCM(key.material).decrypt(payload.nonce, payload.ciphertext, None)
    except InvalidTag as exc:
        raise AuthenticationError("Ciphertext failed authentication") from exc


def encode_envelope(payload: EncryptedPayload) -> str:
    """Pack a payload into its stored JSON form."""
    return json.dumps(
        {
            "encryptedData": base64.b64encode(payload.ciphertext).decode("ascii"),
            "iv": base64.b64encode(payload.nonce).decode("ascii"),
        }
    )


def decode_envelope(raw: str) -> EncryptedPayload:
    """Unpack a stored JSON envelope."""
    try:
        data = json.loads(raw)
        ciphertext = base64.b64decode(data["encryptedData"], validate=True)
        nonce = base64.b64decode(data["iv"], validate=True)
    except (ValueError, KeyError, TypeError, binascii.Error) as exc:
        raise DecodingError("Stored ciphertext is malformed") from exc
    return EncryptedPayload(ciphertext=ciphertext, nonce=nonce)


def encrypt_text(text: str, key: SessionKey) -> str:
    """Encrypt a string payload and return the stored envelope."""
    return encode_envelope(encrypt(text.encode("utf-8"), key))


def decrypt_text(raw: str, key: SessionKey) -> str:
    """Decrypt a stored envelope back into a string payload."""
    plaintext = decrypt(decode_envelope(raw), key)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodingError("Plaintext is not valid UTF-8") from exc
