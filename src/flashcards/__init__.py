"""Spaced-repetition flashcards: SM-2 scheduler, stores and a local study API."""

__version__ = "0.1.0"
