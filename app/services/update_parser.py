# app/services/update_parser.py
"""
Parses raw Telegram updates (polling or webhook) into typed inbound events.
Returns None for anything the bot does not handle.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

from app.utils.logger import get_logger

logger = get_logger(__name__)

_COMMAND = re.compile(r"^/([A-Za-z_]+)(?:@\w+)?(?:\s|$)")


@dataclass
class CommandEvent:
    name: str              # without the leading slash, lowercased
    chat_id: int
    user_id: int
    username: Optional[str] = None


@dataclass
class PhotoEvent:
    chat_id: int
    user_id: int
    file_id: str
    username: Optional[str] = None
    media_group_id: Optional[str] = None


@dataclass
class DocumentEvent:
    chat_id: int
    user_id: int
    file_id: str
    mime_type: Optional[str] = None
    username: Optional[str] = None
    media_group_id: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type and self.mime_type.startswith("image/"))


@dataclass
class CallbackEvent:
    chat_id: int
    user_id: int
    callback_id: str
    message_id: int
    token: str


InboundEvent = Union[CommandEvent, PhotoEvent, DocumentEvent, CallbackEvent]


def _display_name(user: dict) -> Optional[str]:
    return user.get("username") or user.get("first_name")


def parse_update(update: dict) -> Optional[InboundEvent]:
    callback = update.get("callback_query")
    if callback:
        message = callback.get("message") or {}
        chat = message.get("chat") or {}
        if "id" not in chat:
            logger.debug(f"Callback {callback.get('id')} without message, ignored")
            return None
        return CallbackEvent(
            chat_id=chat["id"],
            user_id=callback["from"]["id"],
            callback_id=callback["id"],
            message_id=message.get("message_id"),
            token=callback.get("data") or "",
        )

    message = update.get("message")
    if not message or "from" not in message:
        return None

    chat_id = message["chat"]["id"]
    user = message["from"]
    username = _display_name(user)

    photos = message.get("photo")
    if photos:
        # Telegram lists sizes ascending; the last one is the largest
        return PhotoEvent(
            chat_id=chat_id,
            user_id=user["id"],
            username=username,
            file_id=photos[-1]["file_id"],
            media_group_id=message.get("media_group_id"),
        )

    document = message.get("document")
    if document:
        return DocumentEvent(
            chat_id=chat_id,
            user_id=user["id"],
            username=username,
            file_id=document["file_id"],
            mime_type=document.get("mime_type"),
            media_group_id=message.get("media_group_id"),
        )

    match = _COMMAND.match(message.get("text") or "")
    if match:
        return CommandEvent(
            name=match.group(1).lower(),
            chat_id=chat_id,
            user_id=user["id"],
            username=username,
        )

    return None
