# app/services/media_group.py
"""
Media-group batching and per-user in-flight exclusion.

Telegram delivers an album of photos as separate messages sharing a
media_group_id. MediaGroupCoordinator collects them and, once no new item has
arrived for the debounce window, hands the whole batch to its callback
exactly once.

UserProcessingGuard is the per-user "submission in flight" token. A user holds
at most one token; a token older than the watchdog timeout is considered
stale (its handler died without releasing) and may be taken over.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


class UserProcessingGuard:
    def __init__(self, timeout_seconds: float = None, clock: Callable[[], float] = time.monotonic):
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.PROCESSING_TIMEOUT_SECONDS
        self._clock = clock
        self._in_flight: dict[int, tuple[object, float]] = {}

    def acquire(self, user_id: int) -> Optional[object]:
        """Return a token if the user had nothing in flight, else None."""
        now = self._clock()
        held = self._in_flight.get(user_id)
        if held is not None:
            _, acquired_at = held
            if now - acquired_at < self.timeout_seconds:
                return None
            logger.warning(f"[GUARD] user={user_id} stale in-flight flag "
                           f"({int(now - acquired_at)}s old) taken over")
        token = object()
        self._in_flight[user_id] = (token, now)
        return token

    def release(self, user_id: int, token: object):
        """Release only if the token is still the current one (a takeover may have replaced it)."""
        held = self._in_flight.get(user_id)
        if held is not None and held[0] is token:
            del self._in_flight[user_id]

    @property
    def in_flight(self) -> int:
        """Users currently holding a live (non-stale) token."""
        now = self._clock()
        return sum(1 for _, acquired_at in self._in_flight.values()
                   if now - acquired_at < self.timeout_seconds)


BatchCallback = Callable[[str, list], Awaitable[Any]]


class MediaGroupCoordinator:
    def __init__(self, on_batch_ready: BatchCallback, debounce_seconds: float = None):
        self._on_batch_ready = on_batch_ready
        self.debounce_seconds = (debounce_seconds if debounce_seconds is not None
                                 else settings.MEDIA_GROUP_DEBOUNCE_SECONDS)
        self._items: dict[str, list] = {}
        self._timers: dict[str, asyncio.Task] = {}

    def on_item_arrived(self, group_id: str, item):
        """Add item to its group and restart the group's debounce timer."""
        self._items.setdefault(group_id, []).append(item)
        timer = self._timers.pop(group_id, None)
        if timer is not None:
            timer.cancel()
        self._timers[group_id] = asyncio.create_task(
            self._flush_after_delay(group_id), name=f"media-group-{group_id}"
        )
        logger.debug(f"[BATCH] group={group_id} now {len(self._items[group_id])} item(s)")

    @property
    def pending_groups(self) -> int:
        return len(self._items)

    async def _flush_after_delay(self, group_id: str):
        try:
            await asyncio.sleep(self.debounce_seconds)
        except asyncio.CancelledError:
            return

        # No await between here and the callback: a late arrival starts a new group
        self._timers.pop(group_id, None)
        items = self._items.pop(group_id, [])
        if not items:
            return

        logger.info(f"[BATCH] group={group_id} flushed with {len(items)} item(s)")
        try:
            await self._on_batch_ready(group_id, items)
        except Exception as e:
            logger.error(f"[BATCH] group={group_id} processing error: {e}", exc_info=True)

    async def aclose(self):
        """Cancel pending timers (shutdown). Unflushed items are dropped."""
        for task in self._timers.values():
            task.cancel()
        if self._items:
            logger.warning(f"[BATCH] Dropping {len(self._items)} unflushed group(s) on shutdown")
        self._timers.clear()
        self._items.clear()
