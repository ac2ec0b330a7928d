"""File-backed local device storage."""

import os
import re
from dataclasses import dataclass
from pathlib import Path

from burnchat.services.storage import LocalStorage

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


@dataclass
class FileLocalStorage(LocalStorage):
    """Stores each item as a private file inside one directory."""

    directory: Path

    def __post_init__(self) -> None:
        self.directory = Path(self.directory).expanduser()

    def _path(self, name: str) -> Path:
        if not _SAFE_NAME.match(name):
            raise ValueError(f"Invalid storage item name: {name!r}")
        return self.directory / name

    def get_item(self, name: str) -> str | None:
        """Return the item's contents, if the file exists."""
        path = self._path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, name: str, value: str) -> None:
        """Write the item atomically with owner-only permissions."""
        path = self._path(name)
        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)
        temp_path = path.with_suffix(path.suffix + ".tmp")
        fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(value)
        temp_path.replace(path)

    def remove_item(self, name: str) -> None:
        """Delete the item's file if present."""
        self._path(name).unlink(missing_ok=True)
