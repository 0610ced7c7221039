"""Tests for Telegram update parsing."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.services.update_parser import (
    CallbackEvent, CommandEvent, DocumentEvent, PhotoEvent, parse_update,
)

USER = {"id": 42, "username": "alice", "first_name": "Alice"}
CHAT = {"id": -1001234, "type": "group"}


def message(**fields):
    return {"update_id": 1, "message": {"message_id": 10, "chat": CHAT, "from": USER, **fields}}


def test_command_with_bot_suffix():
    event = parse_update(message(text="/Current@ParkingBot"))
    assert event == CommandEvent(name="current", chat_id=-1001234, user_id=42, username="alice")


def test_command_with_arguments():
    event = parse_update(message(text="/reset now"))
    assert isinstance(event, CommandEvent)
    assert event.name == "reset"


def test_plain_text_is_ignored():
    assert parse_update(message(text="hello there")) is None


def test_photo_uses_largest_size():
    event = parse_update(message(photo=[
        {"file_id": "small", "width": 90},
        {"file_id": "medium", "width": 320},
        {"file_id": "large", "width": 1280},
    ], media_group_id="album-9"))
    assert isinstance(event, PhotoEvent)
    assert event.file_id == "large"
    assert event.media_group_id == "album-9"


def test_first_name_used_when_no_username():
    update = message(photo=[{"file_id": "p"}])
    update["message"]["from"] = {"id": 7, "first_name": "Bob"}
    assert parse_update(update).username == "Bob"


def test_image_document():
    event = parse_update(message(document={"file_id": "doc-1", "mime_type": "image/jpeg"}))
    assert isinstance(event, DocumentEvent)
    assert event.is_image


def test_non_image_document():
    event = parse_update(message(document={"file_id": "doc-2", "mime_type": "application/pdf"}))
    assert isinstance(event, DocumentEvent)
    assert not event.is_image


def test_callback_query():
    update = {
        "update_id": 2,
        "callback_query": {
            "id": "cb-77",
            "from": {"id": 42},
            "data": "confirm:reset_month:-1001234",
            "message": {"message_id": 555, "chat": CHAT},
        },
    }
    assert parse_update(update) == CallbackEvent(
        chat_id=-1001234, user_id=42, callback_id="cb-77", message_id=555,
        token="confirm:reset_month:-1001234",
    )


def test_callback_without_message_is_ignored():
    update = {"update_id": 3, "callback_query": {"id": "cb", "from": {"id": 42}, "data": "x"}}
    assert parse_update(update) is None


def test_unrelated_updates_are_ignored():
    assert parse_update({"update_id": 4, "edited_message": {"text": "/current"}}) is None
    assert parse_update({"update_id": 5, "message": {"chat": CHAT, "text": "/current"}}) is None
