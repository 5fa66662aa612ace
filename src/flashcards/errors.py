from __future__ import annotations


class FlashcardsError(Exception):
    """Base class for domain errors raised by the flashcards core."""


class NotFoundError(FlashcardsError, LookupError):
    """A referenced card or deck does not exist in the store."""

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class InvalidQualityError(FlashcardsError, ValueError):
    """Quality rating outside the 0..5 range (or not an integer)."""

    def __init__(self, quality: object) -> None:
        self.quality = quality
        super().__init__(f"quality must be an integer between 0 and 5, got {quality!r}")


class AnswerNotRevealedError(FlashcardsError, RuntimeError):
    """A study session was rated before the answer side was shown."""


class SessionFinishedError(FlashcardsError, RuntimeError):
    """A study session was rated after its last card."""
