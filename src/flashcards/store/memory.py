from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from ..models import Card, Deck, ReviewLog


class _MemoryReviewTransaction:
    """Stages writes until the enclosing transaction commits."""

    def __init__(self, store: "InMemoryStore") -> None:
        self._store = store
        self.staged_cards: dict[str, Card] = {}
        self.staged_logs: list[ReviewLog] = []

    def get_card(self, card_id: str) -> Card | None:
        staged = self.staged_cards.get(card_id)
        if staged is not None:
            return staged.model_copy()
        return self._store.get_card(card_id)

    def put_card(self, card: Card) -> None:
        self.staged_cards[card.id] = card.model_copy()

    def append_review_log(self, log: ReviewLog) -> None:
        self.staged_logs.append(log)


class InMemoryStore:
    """Process-local store keeping everything in dicts.

    - 構造の読み書きは `_lock` で保護する
    - 採点はカード ID ごとの `threading.Lock` で直列化し、異なるカードは並行に処理できる
      （ロックは add_card で作り delete_card で捨てる。存在しない ID は共有ロック）
    - 返す Card/Deck はコピーなので呼び出し側の変更はストアに影響しない
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._decks: dict[str, Deck] = {}
        self._cards: dict[str, Card] = {}
        self._logs: list[ReviewLog] = []
        self._card_locks: dict[str, threading.Lock] = {}
        self._unknown_card_lock = threading.Lock()

    def _card_lock(self, card_id: str) -> threading.Lock:
        with self._lock:
            return self._card_locks.get(card_id, self._unknown_card_lock)

    # --- cards used by the scheduler ---
    def get_card(self, card_id: str) -> Card | None:
        with self._lock:
            card = self._cards.get(card_id)
            return card.model_copy() if card is not None else None

    def put_card(self, card: Card) -> None:
        with self._lock:
            self._cards[card.id] = card.model_copy()

    def append_review_log(self, log: ReviewLog) -> None:
        with self._lock:
            self._logs.append(log)

    def get_cards_by_deck(self, deck_id: str) -> list[Card]:
        with self._lock:
            cards = [c.model_copy() for c in self._cards.values() if c.deck_id == deck_id]
        return sorted(cards, key=lambda c: c.id)

    @contextmanager
    def review_transaction(self, card_id: str) -> Iterator[_MemoryReviewTransaction]:
        with self._card_lock(card_id):
            tx = _MemoryReviewTransaction(self)
            yield tx
            with self._lock:
                for card in tx.staged_cards.values():
                    self._cards[card.id] = card
                self._logs.extend(tx.staged_logs)

    # --- decks ---
    def add_deck(self, deck: Deck) -> None:
        with self._lock:
            if deck.id in self._decks:
                raise KeyError(f"duplicate deck id: {deck.id}")
            self._decks[deck.id] = deck.model_copy()

    def get_deck(self, deck_id: str) -> Deck | None:
        with self._lock:
            deck = self._decks.get(deck_id)
            return deck.model_copy() if deck is not None else None

    def put_deck(self, deck: Deck) -> None:
        with self._lock:
            if deck.id in self._decks:
                self._decks[deck.id] = deck.model_copy()

    def list_decks(self) -> list[Deck]:
        with self._lock:
            decks = [d.model_copy() for d in self._decks.values()]
        return sorted(decks, key=lambda d: (-d.updated_at, d.id))

    def delete_deck(self, deck_id: str) -> bool:
        with self._lock:
            if self._decks.pop(deck_id, None) is None:
                return False
            card_ids = [cid for cid, c in self._cards.items() if c.deck_id == deck_id]
        for card_id in card_ids:
            self.delete_card(card_id)
        return True

    # --- card management ---
    def add_card(self, card: Card) -> None:
        with self._lock:
            if card.id in self._cards:
                raise KeyError(f"duplicate card id: {card.id}")
            self._cards[card.id] = card.model_copy()
            self._card_locks[card.id] = threading.Lock()

    def update_card_content(self, card_id: str, *, front: str, back: str) -> Card | None:
        with self._card_lock(card_id):
            with self._lock:
                card = self._cards.get(card_id)
                if card is None:
                    return None
                updated = card.model_copy(update={"front": front, "back": back})
                self._cards[card_id] = updated
                return updated.model_copy()

    def delete_card(self, card_id: str) -> bool:
        # 採点中のカードは採点完了を待ってから削除する
        with self._card_lock(card_id):
            with self._lock:
                removed = self._cards.pop(card_id, None) is not None
                self._card_locks.pop(card_id, None)
        return removed

    # --- history ---
    def list_review_logs(self, card_id: str) -> list[ReviewLog]:
        with self._lock:
            logs = [log for log in self._logs if log.card_id == card_id]
        return sorted(logs, key=lambda log: log.timestamp)

    def close(self) -> None:
        return None
