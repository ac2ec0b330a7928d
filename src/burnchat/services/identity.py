"""Pseudonymous device identity."""

import secrets
from dataclasses import dataclass

from burnchat.domain.errors import EntropyError
from burnchat.services.storage import LocalStorage

_ANONYMOUS_ID_ITEM = "burna_anonymous_id"


def generate_anonymous_id() -> str:
    """Generate a new pseudonymous identifier."""
    try:
        return "anon_" + secrets.token_hex(12)
    except (NotImplementedError, OSError) as exc:
        raise EntropyError("Could not generate anonymous id") from exc


@dataclass
class DeviceIdentity:
    """Anonymous id generated once per device and reused for every chat."""

    storage: LocalStorage

    def anonymous_id(self) -> str:
        """Return this device's anonymous id, creating it on first use."""
        existing = self.storage.get_item(_ANONYMOUS_ID_ITEM)
        if existing:
            return existing
        created = generate_anonymous_id()
        self.storage.set_item(_ANONYMOUS_ID_ITEM, created)
        return created
