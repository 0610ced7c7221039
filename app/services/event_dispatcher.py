# app/services/event_dispatcher.py
"""Routes inbound Telegram events to the command and submission handlers."""

from app.exceptions import TransportError
from app.services import messages
from app.services.command_service import notify_error
from app.services.update_parser import (
    CallbackEvent, CommandEvent, DocumentEvent, InboundEvent, PhotoEvent, parse_update,
)
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def dispatch_event(event: InboundEvent, bot):
    """
    Run the handler for one event. Never raises: any failure is logged and,
    where a chat is known, the user gets a generic error notice.
    """
    try:
        if isinstance(event, CommandEvent):
            logger.info(f"/{event.name} from user={event.user_id} chat={event.chat_id}")
            await bot.commands.handle_command(event)

        elif isinstance(event, CallbackEvent):
            await bot.commands.handle_callback(event)

        elif isinstance(event, PhotoEvent):
            await bot.submissions.on_image(event)

        elif isinstance(event, DocumentEvent):
            if event.is_image:
                await bot.submissions.on_image(event)
            else:
                await bot.telegram.send_message(event.chat_id, messages.NOT_AN_IMAGE)

    except TransportError as e:
        logger.error(f"Transport error handling {type(event).__name__}: {e}")
        await notify_error(bot.telegram, event.chat_id)
    except Exception as e:
        logger.error(f"Unhandled error handling {type(event).__name__}: {e}", exc_info=True)
        await notify_error(bot.telegram, event.chat_id)


def schedule_update(update: dict, bot) -> bool:
    """Parse a raw update and dispatch it as a background task. False if ignored."""
    event = parse_update(update)
    if event is None:
        logger.debug(f"Update {update.get('update_id')} ignored")
        return False
    bot.spawn(dispatch_event(event, bot), name=f"update-{update.get('update_id')}")
    return True
