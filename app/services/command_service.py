# app/services/command_service.py
"""
Chat command handlers and the reset confirmation callbacks.

/current  this month's sessions + day/night totals
/history  monthly totals (newest first) with their sessions
/recent   latest sessions across months
/reset    reset current month   (confirm/cancel buttons)
/kaboom   delete all history    (confirm/cancel buttons)
"""

from app.config import settings
from app.exceptions import AuthorizationError, ConfirmationNotFound, PersistenceError, TransportError
from app.services import messages
from app.services.confirmation import (
    ConfirmationMachine, Decision, ResetAction, confirmation_keyboard, parse_action_token,
)
from app.services.record_store import MonthTotals, RecordStore
from app.services.update_parser import CallbackEvent, CommandEvent
from app.utils.logger import get_logger

logger = get_logger(__name__)

# Telegram rejects messages longer than 4096 characters
MAX_MESSAGE_LENGTH = 4000


def _fit(text: str) -> str:
    if len(text) <= MAX_MESSAGE_LENGTH:
        return text
    return text[:MAX_MESSAGE_LENGTH].rsplit("\n", 1)[0] + "\n…"


class CommandService:
    def __init__(self, telegram, store: RecordStore, confirmations: ConfirmationMachine = None):
        self.telegram = telegram
        self.store = store
        self.confirmations = confirmations if confirmations is not None else ConfirmationMachine()
        self._handlers = {
            "start": self.handle_help,
            "help": self.handle_help,
            "current": self.handle_current,
            "history": self.handle_history,
            "recent": self.handle_recent,
            "reset": self.handle_reset_month,
            "kaboom": self.handle_reset_all,
        }

    async def handle_command(self, event: CommandEvent):
        handler = self._handlers.get(event.name)
        if handler is None:
            logger.debug(f"Unknown command /{event.name} from chat={event.chat_id}")
            return
        try:
            await handler(event)
        except PersistenceError as e:
            logger.error(f"[CMD] /{event.name} chat={event.chat_id} store error: {e}")
            await self.telegram.send_message(event.chat_id, "❌ Error retrieving parking data. Please try again.")

    async def handle_help(self, event: CommandEvent):
        await self.telegram.send_message(event.chat_id, messages.HELP)

    async def handle_current(self, event: CommandEvent):
        now = self.store.now()
        totals = self.store.get_current_month_total(event.chat_id)
        sessions = self.store.get_current_month_sessions(event.chat_id)
        await self.telegram.send_message(
            event.chat_id, _fit(messages.current_month(now.month, now.year, totals, sessions))
        )

    async def handle_history(self, event: CommandEvent):
        totals = self.store.get_monthly_history(event.chat_id, limit=settings.HISTORY_MONTHS)
        sessions = self.store.get_all_sessions_grouped_by_month(event.chat_id)
        await self.telegram.send_message(event.chat_id, _fit(messages.history(totals, sessions)))

    async def handle_recent(self, event: CommandEvent):
        sessions = self.store.get_recent_sessions(event.chat_id, limit=settings.RECENT_SESSIONS)
        await self.telegram.send_message(event.chat_id, _fit(messages.recent(sessions)))

    # ── Reset flow ────────────────────────────────────────────────────────

    async def handle_reset_month(self, event: CommandEvent):
        now = self.store.now()
        totals = self.store.get_current_month_total(event.chat_id)
        if totals.is_empty:
            await self.telegram.send_message(event.chat_id, messages.nothing_to_reset_month(now.month, now.year))
            return

        pending = self.confirmations.request(event.chat_id, ResetAction.RESET_MONTH, event.user_id)
        pending.message_id = await self.telegram.send_message(
            event.chat_id,
            messages.confirm_reset_month(now.month, now.year, totals),
            reply_markup=confirmation_keyboard(ResetAction.RESET_MONTH, event.chat_id),
        )

    async def handle_reset_all(self, event: CommandEvent):
        history = self.store.get_monthly_history(event.chat_id, limit=10_000)
        if not history:
            await self.telegram.send_message(event.chat_id, messages.nothing_to_reset_all())
            return

        totals = MonthTotals(
            total_minutes=sum(r.total_duration_minutes for r in history),
            day_minutes=sum(r.day_minutes for r in history),
            night_minutes=sum(r.night_minutes for r in history),
        )
        pending = self.confirmations.request(event.chat_id, ResetAction.RESET_ALL, event.user_id)
        pending.message_id = await self.telegram.send_message(
            event.chat_id,
            messages.confirm_reset_all(len(history), totals),
            reply_markup=confirmation_keyboard(ResetAction.RESET_ALL, event.chat_id),
        )

    async def handle_callback(self, event: CallbackEvent):
        parsed = parse_action_token(event.token)
        if parsed is None or parsed[2] != event.chat_id:
            logger.warning(f"[CONFIRM] Ignoring callback token {event.token!r} in chat={event.chat_id}")
            await self.telegram.answer_callback(event.callback_id)
            return
        decision, action, chat_id = parsed

        try:
            self.confirmations.resolve(chat_id, action, event.user_id, decision)
        except AuthorizationError:
            await self.telegram.answer_callback(event.callback_id, messages.NOT_AUTHORIZED, show_alert=True)
            return
        except ConfirmationNotFound:
            await self.telegram.edit_message(chat_id, event.message_id, messages.RESET_EXPIRED)
            await self.telegram.answer_callback(event.callback_id, "This request is no longer active.")
            return

        if decision == Decision.CANCEL:
            await self.telegram.edit_message(chat_id, event.message_id, messages.RESET_CANCELLED)
            await self.telegram.answer_callback(event.callback_id, "Reset cancelled.")
            return

        await self._apply_reset(chat_id, action, event)

    async def _apply_reset(self, chat_id: int, action: ResetAction, event: CallbackEvent):
        now = self.store.now()
        try:
            if action == ResetAction.RESET_MONTH:
                removed = self.store.reset_month(chat_id)
                text = (messages.reset_month_done(now.month, now.year) if removed is not None
                        else messages.nothing_to_reset_month(now.month, now.year))
            else:
                summary = self.store.reset_all(chat_id)
                text = (messages.reset_all_done(summary) if summary is not None
                        else messages.nothing_to_reset_all())
        except PersistenceError as e:
            logger.error(f"[RESET] chat={chat_id} {action.value} failed: {e}")
            await self.telegram.edit_message(chat_id, event.message_id, messages.RESET_FAILED)
            await self.telegram.answer_callback(event.callback_id, "Reset failed!", show_alert=True)
            return

        await self.telegram.edit_message(chat_id, event.message_id, text)
        await self.telegram.answer_callback(event.callback_id, "Reset completed successfully!")


async def notify_error(telegram, chat_id: int):
    """Best-effort generic error notice; never raises."""
    try:
        await telegram.send_message(chat_id, "❌ An error occurred. Please try again.")
    except TransportError as e:
        logger.warning(f"Could not deliver error notice to chat={chat_id}: {e}")
