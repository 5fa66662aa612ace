from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from ..models import Card, Deck, ReviewLog


class ReviewTransaction(Protocol):
    """Read/write handle scoped to one card's review.

    Writes made through the handle are applied together when the enclosing
    `Store.review_transaction` block exits normally, and discarded if it
    raises.
    """

    def get_card(self, card_id: str) -> Card | None: ...

    def put_card(self, card: Card) -> None: ...

    def append_review_log(self, log: ReviewLog) -> None: ...


class Store(Protocol):
    """Persistence collaborator for decks, cards and review logs.

    実装は `review_transaction(card_id)` で同一カードの採点を直列化し、
    カード更新とレビュー履歴追加を原子的に適用すること。
    """

    # --- cards used by the scheduler ---
    def get_card(self, card_id: str) -> Card | None: ...

    def put_card(self, card: Card) -> None: ...

    def append_review_log(self, log: ReviewLog) -> None: ...

    def get_cards_by_deck(self, deck_id: str) -> list[Card]: ...

    def review_transaction(self, card_id: str) -> AbstractContextManager[ReviewTransaction]: ...

    # --- decks ---
    def add_deck(self, deck: Deck) -> None: ...

    def get_deck(self, deck_id: str) -> Deck | None: ...

    def put_deck(self, deck: Deck) -> None: ...

    def list_decks(self) -> list[Deck]: ...

    def delete_deck(self, deck_id: str) -> bool: ...

    # --- card management ---
    def add_card(self, card: Card) -> None: ...

    def update_card_content(self, card_id: str, *, front: str, back: str) -> Card | None: ...

    def delete_card(self, card_id: str) -> bool: ...

    # --- history ---
    def list_review_logs(self, card_id: str) -> list[ReviewLog]: ...

    def close(self) -> None: ...
