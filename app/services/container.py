# app/services/container.py
"""
Wires the bot's services together. Built once at startup and stored on
app.state.bot; tests build their own with fakes.
"""

import asyncio
from dataclasses import dataclass, field

from app.database import SessionLocal
from app.services.accounting_service import AccountingEngine
from app.services.command_service import CommandService
from app.services.confirmation import ConfirmationMachine
from app.services.extraction_service import GeminiExtractor
from app.services.ocr_service import TesseractOcr
from app.services.record_store import RecordStore
from app.services.submission_service import SubmissionService
from app.services.telegram_client import TelegramClient
from app.utils.clock import local_now
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BotServices:
    telegram: object
    store: RecordStore
    engine: AccountingEngine
    submissions: SubmissionService
    commands: CommandService
    extractor: object = None
    _tasks: set = field(default_factory=set)

    def spawn(self, coro, name: str = None) -> asyncio.Task:
        """Run a handler in the background, keeping a reference until it finishes."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self):
        await self.submissions.media_groups.aclose()
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight handler(s)...")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        for client in (self.telegram, self.extractor):
            if client is not None and hasattr(client, "aclose"):
                await client.aclose()


def build_services(session_factory=None, telegram=None, ocr=None, extractor=None,
                   clock=None) -> BotServices:
    telegram = telegram or TelegramClient()
    store = RecordStore(session_factory or SessionLocal, clock or local_now)
    engine = AccountingEngine(store)
    extractor = extractor or GeminiExtractor()
    submissions = SubmissionService(
        telegram=telegram,
        ocr=ocr or TesseractOcr(),
        extractor=extractor,
        engine=engine,
        store=store,
    )
    commands = CommandService(telegram=telegram, store=store, confirmations=ConfirmationMachine())
    return BotServices(
        telegram=telegram,
        store=store,
        engine=engine,
        submissions=submissions,
        commands=commands,
        extractor=extractor,
    )
