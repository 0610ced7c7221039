# app/services/confirmation.py
"""
Two-step confirmation for destructive resets.

  Idle ──request──▶ AwaitingConfirmation ──confirm──▶ Applied
                                         └─cancel──▶ Cancelled

Pending requests are keyed by (chat_id, action) and owned by the requesting
user. Only that user may confirm or cancel; anyone else gets
AuthorizationError and the request stays pending. Resolving removes the
entry. Requests older than the TTL are dropped the next time they are looked
up and resolve as ConfirmationNotFound.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from app.config import settings
from app.exceptions import AuthorizationError, ConfirmationNotFound
from app.utils.logger import get_logger

logger = get_logger(__name__)


class ResetAction(str, Enum):
    RESET_MONTH = "reset_month"
    RESET_ALL = "reset_all"


class Decision(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"


class ConfirmationState(str, Enum):
    AWAITING = "awaiting_confirmation"
    APPLIED = "applied"
    CANCELLED = "cancelled"


@dataclass
class PendingConfirmation:
    chat_id: int
    action: ResetAction
    requester_id: int
    requested_at: float
    state: ConfirmationState = ConfirmationState.AWAITING
    message_id: Optional[int] = None


def build_action_token(decision: Decision, action: ResetAction, chat_id: int) -> str:
    return f"{decision.value}:{action.value}:{chat_id}"


def parse_action_token(token: str) -> Optional[tuple[Decision, ResetAction, int]]:
    """Inverse of build_action_token. None for anything malformed."""
    parts = token.split(":")
    if len(parts) != 3:
        return None
    try:
        return Decision(parts[0]), ResetAction(parts[1]), int(parts[2])
    except ValueError:
        return None


def confirmation_keyboard(action: ResetAction, chat_id: int) -> dict:
    return {
        "inline_keyboard": [[
            {"text": "✅ Yes, Reset", "callback_data": build_action_token(Decision.CONFIRM, action, chat_id)},
            {"text": "❌ Cancel", "callback_data": build_action_token(Decision.CANCEL, action, chat_id)},
        ]]
    }


class ConfirmationMachine:
    def __init__(self, ttl_seconds: float = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.CONFIRMATION_TTL_SECONDS
        self._clock = clock
        self._pending: dict[tuple[int, ResetAction], PendingConfirmation] = {}

    def request(self, chat_id: int, action: ResetAction, user_id: int) -> PendingConfirmation:
        """Idle → AwaitingConfirmation. A newer request for the same key replaces the older one."""
        self._purge_expired()
        pending = PendingConfirmation(chat_id=chat_id, action=action, requester_id=user_id,
                                      requested_at=self._clock())
        if (chat_id, action) in self._pending:
            logger.info(f"[CONFIRM] chat={chat_id} {action.value} re-requested, previous request replaced")
        self._pending[(chat_id, action)] = pending
        logger.info(f"[CONFIRM] chat={chat_id} {action.value} awaiting confirmation from user={user_id}")
        return pending

    def get(self, chat_id: int, action: ResetAction) -> Optional[PendingConfirmation]:
        self._purge_expired()
        return self._pending.get((chat_id, action))

    def resolve(self, chat_id: int, action: ResetAction, user_id: int,
                decision: Decision) -> PendingConfirmation:
        """
        AwaitingConfirmation → Applied | Cancelled.
        Raises ConfirmationNotFound if nothing is pending (or it expired),
        AuthorizationError if user_id is not the requester (state unchanged).
        """
        pending = self.get(chat_id, action)
        if pending is None:
            raise ConfirmationNotFound(f"No pending {action.value} for chat {chat_id}")
        if pending.requester_id != user_id:
            logger.warning(f"[CONFIRM] chat={chat_id} {action.value}: user={user_id} is not the requester")
            raise AuthorizationError(f"User {user_id} cannot resolve {action.value} for chat {chat_id}")

        del self._pending[(chat_id, action)]
        pending.state = (ConfirmationState.APPLIED if decision == Decision.CONFIRM
                         else ConfirmationState.CANCELLED)
        logger.info(f"[CONFIRM] chat={chat_id} {action.value} → {pending.state.value}")
        return pending

    def __len__(self):
        return len(self._pending)

    def _purge_expired(self):
        now = self._clock()
        expired = [key for key, p in self._pending.items() if now - p.requested_at >= self.ttl_seconds]
        for key in expired:
            logger.info(f"[CONFIRM] chat={key[0]} {key[1].value} expired")
            del self._pending[key]
