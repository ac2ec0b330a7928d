"""Tests for share link helpers."""

from uuid import uuid4

import pytest

from burnchat.domain.chats import SessionKey
from burnchat.domain.errors import DecodingError
from burnchat.domain.links import build_chat_link, parse_chat_link


def test_link_without_key() -> None:
    chat_id = uuid4()
    link = build_chat_link("https://burn.example/", chat_id)

    assert link == f"https://burn.example/chat/{chat_id}"
    assert parse_chat_link(link) == (chat_id, None)


def test_key_travels_in_fragment_only() -> None:
    chat_id = uuid4()
    key = SessionKey(material=bytes(range(32)))
    link = build_chat_link("https://burn.example", chat_id, key)

    path, _, fragment = link.partition("#")
    assert path == f"https://burn.example/chat/{chat_id}"
    assert fragment.startswith("key=")
    assert parse_chat_link(link) == (chat_id, key)


def test_invalid_chat_id_raises() -> None:
    with pytest.raises(ValueError):
        parse_chat_link("https://burn.example/chat/not-a-uuid")


def test_short_key_in_fragment_raises() -> None:
    with pytest.raises(DecodingError):
        parse_chat_link(f"https://burn.example/chat/{uuid4()}#key=AAAA")
