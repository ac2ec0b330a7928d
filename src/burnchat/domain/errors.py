"""Error types raised by the messaging engine."""


class ChatError(Exception):
    """Base class for chat engine failures."""


class ChatNotFoundError(ChatError):
    """Chat is missing, terminated or past its own expiry."""


class ChatFullError(ChatError):
    """Chat already holds its maximum number of participants."""


class CreationError(ChatError):
    """The store rejected a write that should have produced a row."""


class StoreUnavailableError(ChatError):
    """The store could not be reached or reported an error."""


class EntropyError(ChatError):
    """Random key or nonce material could not be generated."""


class MissingKeyError(ChatError):
    """No session key is available on this device for the chat."""


class InvalidStateError(ChatError):
    """Operation is not allowed in the context's current state."""


class DecryptionError(ChatError):
    """A single message could not be turned back into plaintext."""


class AuthenticationError(DecryptionError):
    """Authentication tag did not verify (tampering or wrong key)."""


class DecodingError(DecryptionError):
    """Stored ciphertext envelope is malformed."""
