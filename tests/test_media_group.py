"""Tests for media-group debouncing and the per-user processing guard."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import pytest
from unittest.mock import AsyncMock
from app.services.media_group import MediaGroupCoordinator, UserProcessingGuard


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestUserProcessingGuard:
    def test_second_acquire_is_refused(self):
        guard = UserProcessingGuard(timeout_seconds=300, clock=FakeClock())
        assert guard.acquire(42) is not None
        assert guard.acquire(42) is None
        assert guard.in_flight == 1

    def test_users_are_independent(self):
        guard = UserProcessingGuard(timeout_seconds=300, clock=FakeClock())
        assert guard.acquire(42) is not None
        assert guard.acquire(7) is not None
        assert guard.in_flight == 2

    def test_release_frees_the_user(self):
        guard = UserProcessingGuard(timeout_seconds=300, clock=FakeClock())
        token = guard.acquire(42)
        guard.release(42, token)
        assert guard.in_flight == 0
        assert guard.acquire(42) is not None

    def test_stale_token_is_taken_over(self):
        clock = FakeClock()
        guard = UserProcessingGuard(timeout_seconds=300, clock=clock)
        old = guard.acquire(42)

        clock.now += 301
        assert guard.in_flight == 0
        new = guard.acquire(42)
        assert new is not None and new is not old

        # The dead handler's late release must not free the new holder
        guard.release(42, old)
        assert guard.in_flight == 1
        guard.release(42, new)
        assert guard.in_flight == 0


class TestMediaGroupCoordinator:
    @pytest.mark.asyncio
    async def test_flushes_once_after_quiet_period(self):
        callback = AsyncMock()
        coordinator = MediaGroupCoordinator(callback, debounce_seconds=0.05)

        coordinator.on_item_arrived("g1", "a")
        coordinator.on_item_arrived("g1", "b")
        coordinator.on_item_arrived("g1", "c")
        await asyncio.sleep(0.2)

        callback.assert_awaited_once_with("g1", ["a", "b", "c"])
        assert coordinator.pending_groups == 0

    @pytest.mark.asyncio
    async def test_new_item_restarts_the_timer(self):
        callback = AsyncMock()
        coordinator = MediaGroupCoordinator(callback, debounce_seconds=0.1)

        coordinator.on_item_arrived("g1", "a")
        await asyncio.sleep(0.06)
        coordinator.on_item_arrived("g1", "b")
        await asyncio.sleep(0.06)
        callback.assert_not_awaited()

        await asyncio.sleep(0.15)
        callback.assert_awaited_once_with("g1", ["a", "b"])

    @pytest.mark.asyncio
    async def test_groups_flush_independently(self):
        callback = AsyncMock()
        coordinator = MediaGroupCoordinator(callback, debounce_seconds=0.05)

        coordinator.on_item_arrived("g1", "a")
        coordinator.on_item_arrived("g2", "x")
        await asyncio.sleep(0.2)

        assert callback.await_count == 2
        flushed = {call.args[0]: call.args[1] for call in callback.await_args_list}
        assert flushed == {"g1": ["a"], "g2": ["x"]}

    @pytest.mark.asyncio
    async def test_callback_error_is_contained(self):
        callback = AsyncMock(side_effect=RuntimeError("boom"))
        coordinator = MediaGroupCoordinator(callback, debounce_seconds=0.01)

        coordinator.on_item_arrived("g1", "a")
        await asyncio.sleep(0.1)

        callback.assert_awaited_once()
        assert coordinator.pending_groups == 0

    @pytest.mark.asyncio
    async def test_aclose_drops_pending_groups(self):
        callback = AsyncMock()
        coordinator = MediaGroupCoordinator(callback, debounce_seconds=0.5)

        coordinator.on_item_arrived("g1", "a")
        await coordinator.aclose()
        await asyncio.sleep(0.05)

        assert coordinator.pending_groups == 0
        callback.assert_not_awaited()
