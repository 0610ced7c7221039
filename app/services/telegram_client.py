# app/services/telegram_client.py
"""
Outbound Telegram Bot API client (httpx).
Every method raises TransportError when Telegram is unreachable or answers ok=false.
"""

from typing import Optional

import httpx

from app.config import settings
from app.exceptions import TransportError
from app.utils.logger import get_logger

logger = get_logger(__name__)


class TelegramClient:
    def __init__(self, token: str = None, api_base: str = None, timeout: float = None,
                 client: Optional[httpx.AsyncClient] = None):
        token = token if token is not None else settings.TELEGRAM_BOT_TOKEN
        api_base = api_base or settings.TELEGRAM_API_BASE
        self._bot_url = f"{api_base}/bot{token}"
        self._file_url = f"{api_base}/file/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.HTTP_TIMEOUT_SECONDS)

    async def _call(self, method: str, payload: dict = None, timeout: float = None):
        try:
            kwargs = {"json": payload or {}}
            if timeout is not None:
                kwargs["timeout"] = timeout
            response = await self._client.post(f"{self._bot_url}/{method}", **kwargs)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[TG] {method} failed: {e}")
            raise TransportError(f"Telegram {method} failed: {e}") from e

        if not body.get("ok"):
            description = body.get("description", f"HTTP {response.status_code}")
            logger.error(f"[TG] {method} rejected: {description}")
            raise TransportError(f"Telegram {method} rejected: {description}")
        return body.get("result")

    async def send_message(self, chat_id: int, text: str, parse_mode: Optional[str] = "Markdown",
                           reply_markup: Optional[dict] = None) -> int:
        payload = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        if reply_markup:
            payload["reply_markup"] = reply_markup
        result = await self._call("sendMessage", payload)
        return result["message_id"]

    async def edit_message(self, chat_id: int, message_id: int, text: str,
                           parse_mode: Optional[str] = "Markdown"):
        payload = {"chat_id": chat_id, "message_id": message_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode
        await self._call("editMessageText", payload)

    async def answer_callback(self, callback_id: str, text: str = None, show_alert: bool = False):
        payload = {"callback_query_id": callback_id, "show_alert": show_alert}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def fetch_file(self, file_id: str) -> bytes:
        result = await self._call("getFile", {"file_id": file_id})
        file_path = result.get("file_path")
        if not file_path:
            raise TransportError(f"Telegram returned no file_path for {file_id}")
        try:
            response = await self._client.get(f"{self._file_url}/{file_path}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[TG] Download of {file_path} failed: {e}")
            raise TransportError(f"File download failed: {e}") from e
        logger.debug(f"[TG] Downloaded {file_path} ({len(response.content)} bytes)")
        return response.content

    async def get_updates(self, offset: Optional[int], timeout: int) -> list[dict]:
        payload = {"timeout": timeout, "allowed_updates": ["message", "callback_query"]}
        if offset is not None:
            payload["offset"] = offset
        return await self._call("getUpdates", payload, timeout=timeout + 10)

    async def aclose(self):
        await self._client.aclose()
