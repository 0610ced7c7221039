"""Tests for event routing, update scheduling and the long-polling loop."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, MagicMock
from app.exceptions import TransportError
from app.services import messages
from app.services.event_dispatcher import dispatch_event, schedule_update
from app.services.telegram_poller import poll_once
from app.services.update_parser import CallbackEvent, CommandEvent, DocumentEvent, PhotoEvent


def make_bot():
    bot = MagicMock()
    bot.telegram = AsyncMock()
    bot.commands = AsyncMock()
    bot.submissions = AsyncMock()
    return bot


class TestDispatchEvent:
    @pytest.mark.asyncio
    async def test_command_goes_to_command_service(self):
        bot = make_bot()
        event = CommandEvent("current", chat_id=1001, user_id=42)
        await dispatch_event(event, bot)
        bot.commands.handle_command.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_callback_goes_to_command_service(self):
        bot = make_bot()
        event = CallbackEvent(chat_id=1001, user_id=42, callback_id="cb", message_id=5, token="x")
        await dispatch_event(event, bot)
        bot.commands.handle_callback.assert_awaited_once_with(event)

    @pytest.mark.asyncio
    async def test_photo_and_image_document_go_to_submissions(self):
        bot = make_bot()
        photo = PhotoEvent(chat_id=1001, user_id=42, file_id="p")
        document = DocumentEvent(chat_id=1001, user_id=42, file_id="d", mime_type="image/png")
        await dispatch_event(photo, bot)
        await dispatch_event(document, bot)
        assert bot.submissions.on_image.await_count == 2

    @pytest.mark.asyncio
    async def test_non_image_document_gets_hint(self):
        bot = make_bot()
        await dispatch_event(DocumentEvent(chat_id=1001, user_id=42, file_id="d",
                                           mime_type="application/pdf"), bot)
        bot.telegram.send_message.assert_awaited_once_with(1001, messages.NOT_AN_IMAGE)
        bot.submissions.on_image.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_failure_sends_generic_error(self):
        bot = make_bot()
        bot.commands.handle_command.side_effect = RuntimeError("boom")
        await dispatch_event(CommandEvent("current", chat_id=1001, user_id=42), bot)
        bot.telegram.send_message.assert_awaited_once_with(1001, "❌ An error occurred. Please try again.")

    @pytest.mark.asyncio
    async def test_undeliverable_error_notice_is_swallowed(self):
        bot = make_bot()
        bot.commands.handle_command.side_effect = TransportError("sendMessage failed")
        bot.telegram.send_message.side_effect = TransportError("still down")
        await dispatch_event(CommandEvent("current", chat_id=1001, user_id=42), bot)


class TestScheduleUpdate:
    def test_known_update_is_spawned(self):
        bot = MagicMock()
        update = {"update_id": 7, "message": {"chat": {"id": 1}, "from": {"id": 2}, "text": "/help"}}

        assert schedule_update(update, bot) is True
        bot.spawn.assert_called_once()
        assert bot.spawn.call_args.kwargs["name"] == "update-7"
        bot.spawn.call_args.args[0].close()

    def test_unknown_update_is_ignored(self):
        bot = MagicMock()
        assert schedule_update({"update_id": 8, "poll": {}}, bot) is False
        bot.spawn.assert_not_called()


class TestPollOnce:
    @pytest.mark.asyncio
    async def test_offset_advances_past_last_update(self):
        bot = MagicMock()
        bot.telegram.get_updates = AsyncMock(return_value=[
            {"update_id": 10, "poll": {}},
            {"update_id": 11, "poll": {}},
        ])
        assert await poll_once(bot, None, 0) == 12
        bot.telegram.get_updates.assert_awaited_once_with(None, 0)

    @pytest.mark.asyncio
    async def test_empty_batch_keeps_offset(self):
        bot = MagicMock()
        bot.telegram.get_updates = AsyncMock(return_value=[])
        assert await poll_once(bot, 12, 0) == 12

    @pytest.mark.asyncio
    async def test_transport_error_propagates_for_backoff(self):
        bot = MagicMock()
        bot.telegram.get_updates = AsyncMock(side_effect=TransportError("timeout"))
        with pytest.raises(TransportError):
            await poll_once(bot, None, 0)
