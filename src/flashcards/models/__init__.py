from .card import Card, CardCreateRequest, CardListItem, CardListResponse, CardUpdateRequest
from .deck import Deck, DeckCreateRequest, DeckListResponse, DeckSummary, DeckUpdateRequest
from .review import DueCardsResponse, ReviewLog, ReviewLogListResponse, ReviewRequest, ReviewResult

__all__ = [
    "Card",
    "CardCreateRequest",
    "CardListItem",
    "CardListResponse",
    "CardUpdateRequest",
    "Deck",
    "DeckCreateRequest",
    "DeckListResponse",
    "DeckSummary",
    "DeckUpdateRequest",
    "DueCardsResponse",
    "ReviewLog",
    "ReviewLogListResponse",
    "ReviewRequest",
    "ReviewResult",
]
