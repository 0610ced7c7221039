# app/exceptions.py
"""
Error taxonomy shared by the accounting engine, submission flow and handlers.
Everything raised by collaborators or storage is converted to one of these
before it reaches the transport layer.
"""

from typing import Optional


class ParkingBotError(Exception):
    """Base class for all bot errors."""


class ExtractionError(ParkingBotError):
    """OCR produced no usable text, or the AI extractor returned a failure."""

    def __init__(self, reason: str, partial_text: Optional[str] = None,
                 matched_fragment: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.partial_text = partial_text
        self.matched_fragment = matched_fragment


class PersistenceError(ParkingBotError):
    """A store operation failed; the transaction was rolled back."""


class DuplicateSessionError(PersistenceError):
    """The (chat, plate, start) unique constraint rejected an insert."""


class AuthorizationError(ParkingBotError):
    """A user other than the requester tried to confirm or cancel a reset."""


class ConfirmationNotFound(ParkingBotError):
    """No pending confirmation exists (never requested, resolved, or expired)."""


class TransportError(ParkingBotError):
    """Telegram, Gemini or another HTTP collaborator was unreachable or refused."""
