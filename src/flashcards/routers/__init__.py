"""API routers for the flashcards app."""

from . import cards, decks, health

__all__ = ["cards", "decks", "health"]
