# app/services/submission_service.py
"""
Photo submission flow: fetch → OCR → AI extraction → accounting engine.

Single photos report progress and a per-item result. Album photos are
collected by MediaGroupCoordinator and processed as one batch: items run
sequentially, per-item messages are suppressed, and a single summary is sent.
Both paths pass the same per-user guard; a user with a submission in flight
gets a "still processing" notice and the new photo is dropped, not queued.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

from app.config import settings
from app.exceptions import ExtractionError, PersistenceError, TransportError
from app.services import messages
from app.services.accounting_service import AccountingEngine, Outcome, OutcomeStatus, Submitter
from app.services.extraction_service import ExtractionFailure
from app.services.media_group import MediaGroupCoordinator, UserProcessingGuard
from app.services.record_store import MonthTotals, RecordStore
from app.services.update_parser import DocumentEvent, PhotoEvent
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubmissionItem:
    chat_id: int
    user_id: int
    file_id: str
    username: Optional[str] = None


@dataclass
class ItemResult:
    outcome: Optional[Outcome] = None
    error: Optional[ExtractionError] = None
    transport_failed: bool = False

    @property
    def status(self) -> OutcomeStatus:
        return self.outcome.status if self.outcome else OutcomeStatus.FAILED


@dataclass
class BatchSummary:
    succeeded: int = 0
    duplicates: int = 0
    failed: int = 0
    totals: Optional[MonthTotals] = None

    def add(self, result: ItemResult):
        if result.status == OutcomeStatus.RECORDED:
            self.succeeded += 1
        elif result.status == OutcomeStatus.DUPLICATE:
            self.duplicates += 1
        else:
            self.failed += 1


def result_message(result: ItemResult) -> str:
    if result.transport_failed:
        return messages.GENERIC_ERROR
    if result.error is not None:
        return messages.extraction_failed(result.error.reason, result.error.partial_text,
                                          result.error.matched_fragment)
    outcome = result.outcome
    if outcome.status == OutcomeStatus.RECORDED:
        return messages.recorded(outcome.session, outcome.totals)
    if outcome.status == OutcomeStatus.DUPLICATE:
        return messages.duplicate(outcome.car_plate, outcome.start_time)
    return messages.save_failed(outcome.error)


class SubmissionService:
    def __init__(self, telegram, ocr, extractor, engine: AccountingEngine, store: RecordStore,
                 guard: UserProcessingGuard = None, debounce_seconds: float = None,
                 min_text_length: int = None):
        self.telegram = telegram
        self.ocr = ocr
        self.extractor = extractor
        self.engine = engine
        self.store = store
        self.guard = guard if guard is not None else UserProcessingGuard()
        self.media_groups = MediaGroupCoordinator(self._run_group, debounce_seconds)
        self.min_text_length = (min_text_length if min_text_length is not None
                                else settings.MIN_OCR_TEXT_LENGTH)

    async def on_image(self, event: Union[PhotoEvent, DocumentEvent]):
        """Entry point from the dispatcher for photos and image documents."""
        item = SubmissionItem(chat_id=event.chat_id, user_id=event.user_id,
                              file_id=event.file_id, username=event.username)
        if event.media_group_id:
            self.media_groups.on_item_arrived(event.media_group_id, item)
            return
        await self.handle_photo(item)

    # ── Single photo ──────────────────────────────────────────────────────

    async def handle_photo(self, item: SubmissionItem) -> Optional[ItemResult]:
        token = self.guard.acquire(item.user_id)
        if token is None:
            logger.info(f"[SUBMIT] user={item.user_id} busy, photo rejected")
            await self._notify(item.chat_id, messages.STILL_PROCESSING)
            return None

        try:
            await self._notify(item.chat_id, messages.IMAGE_RECEIVED)
            result = await self.process_item(item, notify=True)
            await self._notify(item.chat_id, result_message(result))
            return result
        finally:
            self.guard.release(item.user_id, token)

    # ── Batch ─────────────────────────────────────────────────────────────

    async def _run_group(self, group_id: str, items: list) -> Optional[BatchSummary]:
        first = items[0]
        token = self.guard.acquire(first.user_id)
        if token is None:
            logger.info(f"[BATCH] group={group_id} user={first.user_id} busy, batch rejected")
            await self._notify(first.chat_id, messages.STILL_PROCESSING)
            return None

        try:
            await self._notify(first.chat_id, messages.batch_received(len(items)))
            summary = await self.process_batch(items)
            await self._notify(first.chat_id, messages.batch_summary(
                summary.succeeded, summary.duplicates, summary.failed, summary.totals))
            return summary
        finally:
            self.guard.release(first.user_id, token)

    async def process_batch(self, items: list) -> BatchSummary:
        """Run every item through the pipeline, one after another, and tally outcomes."""
        summary = BatchSummary()
        for index, item in enumerate(items, start=1):
            result = await self.process_item(item, notify=False)
            summary.add(result)
            logger.info(f"[BATCH] item {index}/{len(items)} chat={item.chat_id} → {result.status.value}")

        try:
            summary.totals = await asyncio.to_thread(self.store.get_current_month_total, items[0].chat_id)
        except PersistenceError as e:
            logger.error(f"[BATCH] Could not load totals for summary: {e}")
        logger.info(f"[BATCH] done: {summary.succeeded} recorded, {summary.duplicates} duplicate, "
                    f"{summary.failed} failed")
        return summary

    # ── Pipeline ──────────────────────────────────────────────────────────

    async def process_item(self, item: SubmissionItem, notify: bool = False) -> ItemResult:
        """One image through fetch → OCR → extraction → accounting. Never raises."""
        try:
            image = await self.telegram.fetch_file(item.file_id)

            if notify:
                await self._notify(item.chat_id, messages.EXTRACTING_TEXT)
            ocr_result = await self.ocr.recognize(image)
            if len(ocr_result.text) < self.min_text_length:
                raise ExtractionError(messages.NO_READABLE_TEXT, partial_text=ocr_result.text or None)

            if notify:
                await self._notify(item.chat_id, messages.ANALYZING)
            extraction = await self.extractor.extract(ocr_result.text, today=self.store.now().date())
            if isinstance(extraction, ExtractionFailure):
                raise ExtractionError(extraction.reason, partial_text=ocr_result.text,
                                      matched_fragment=extraction.matched_fragment)

            outcome = await asyncio.to_thread(
                self.engine.record_submission,
                item.chat_id, Submitter(item.user_id, item.username), extraction
            )
            return ItemResult(outcome=outcome)

        except ExtractionError as e:
            logger.info(f"[SUBMIT] chat={item.chat_id} extraction failed: {e.reason}")
            return ItemResult(error=e)
        except TransportError as e:
            logger.error(f"[SUBMIT] chat={item.chat_id} collaborator failure: {e}")
            return ItemResult(transport_failed=True)
        except Exception as e:
            logger.error(f"[SUBMIT] chat={item.chat_id} unexpected error: {e}", exc_info=True)
            return ItemResult(transport_failed=True)

    async def _notify(self, chat_id: int, text: str):
        """Send a message; a failed send is logged and never aborts processing."""
        try:
            await self.telegram.send_message(chat_id, text)
        except TransportError as e:
            logger.warning(f"[SUBMIT] Could not notify chat={chat_id}: {e}")
