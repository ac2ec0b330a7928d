"""Tests for file-backed device storage."""

import os
import stat
from uuid import uuid4

import pytest

from burnchat.adapters.file_local_storage import FileLocalStorage
from burnchat.services.identity import DeviceIdentity
from burnchat.services.keys import KeyManager


def test_items_roundtrip_and_remove(tmp_path) -> None:
    storage = FileLocalStorage(tmp_path / "device")

    assert storage.get_item("missing") is None
    storage.set_item("burna_anonymous_id", "anon_1")
    storage.set_item("burna_anonymous_id", "anon_2")
    assert storage.get_item("burna_anonymous_id") == "anon_2"

    storage.remove_item("burna_anonymous_id")
    storage.remove_item("burna_anonymous_id")
    assert storage.get_item("burna_anonymous_id") is None


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
def test_items_are_private(tmp_path) -> None:
    storage = FileLocalStorage(tmp_path / "device")
    storage.set_item("item", "value")

    mode = stat.S_IMODE(os.stat(tmp_path / "device" / "item").st_mode)
    assert mode == 0o600
    assert list((tmp_path / "device").iterdir()) == [tmp_path / "device" / "item"]


def test_rejects_path_like_names(tmp_path) -> None:
    storage = FileLocalStorage(tmp_path)

    with pytest.raises(ValueError):
        storage.get_item("../escape")


def test_keys_and_identity_survive_restart(tmp_path) -> None:
    chat_id = uuid4()
    first = FileLocalStorage(tmp_path)
    key = KeyManager(first).create_key()
    KeyManager(first).store(chat_id, key)
    anonymous_id = DeviceIdentity(first).anonymous_id()

    second = FileLocalStorage(tmp_path)
    assert KeyManager(second).load(chat_id) == key
    assert DeviceIdentity(second).anonymous_id() == anonymous_id
