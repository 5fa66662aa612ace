"""Deck and card management.

デッキ一覧・作成画面とカードブラウザの操作。スケジューリング項目には触れない
（カード編集は front/back のみ）。
"""

from __future__ import annotations

from .errors import NotFoundError
from .logging import logger
from .models import Card, CardListItem, Deck, DeckSummary, ReviewLog
from .review import get_cards_due_for_review
from .scheduler import days_until_review, now_ms, round_half_up
from .store import Store


def create_deck(store: Store, name: str, description: str | None = None, *, now: int | None = None) -> Deck:
    deck = Deck.new(name, description, now=now_ms() if now is None else now)
    store.add_deck(deck)
    logger.info("deck_created", deck_id=deck.id)
    return deck


def get_deck(store: Store, deck_id: str) -> Deck:
    deck = store.get_deck(deck_id)
    if deck is None:
        raise NotFoundError("deck", deck_id)
    return deck


def mastery_percent(card_count: int, due_count: int) -> int:
    """Share of cards that are not due, as a whole percentage (0 for an empty deck)."""
    if card_count <= 0:
        return 0
    return round_half_up((card_count - due_count) / card_count * 100)


def _summarize(store: Store, deck: Deck, cutoff: int) -> DeckSummary:
    card_count = len(store.get_cards_by_deck(deck.id))
    due_count = len(get_cards_due_for_review(store, deck.id, cutoff))
    return DeckSummary(
        deck=deck,
        card_count=card_count,
        due_count=due_count,
        mastery_percent=mastery_percent(card_count, due_count),
    )


def get_deck_summary(store: Store, deck_id: str, *, now: int | None = None) -> DeckSummary:
    """Deck detail: the deck plus card count, due count and mastery."""
    deck = get_deck(store, deck_id)
    return _summarize(store, deck, now_ms() if now is None else now)


def list_decks(store: Store, *, now: int | None = None) -> list[DeckSummary]:
    """Deck summaries, most recently updated first."""
    cutoff = now_ms() if now is None else now
    return [_summarize(store, deck, cutoff) for deck in store.list_decks()]


def update_deck(
    store: Store,
    deck_id: str,
    *,
    name: str | None = None,
    description: str | None = None,
    now: int | None = None,
) -> Deck:
    deck = get_deck(store, deck_id)
    changes: dict[str, object] = {"updated_at": now_ms() if now is None else now}
    if name is not None:
        changes["name"] = name
    if description is not None:
        # 空文字は説明の削除として扱う
        changes["description"] = description or None
    # model_validate で name の空文字などを再検証する
    updated = Deck.model_validate({**deck.model_dump(), **changes})
    store.put_deck(updated)
    return updated


def delete_deck(store: Store, deck_id: str) -> None:
    """Delete a deck and its cards. Review logs are kept."""
    if not store.delete_deck(deck_id):
        raise NotFoundError("deck", deck_id)
    logger.info("deck_deleted", deck_id=deck_id)


def create_card(store: Store, deck_id: str, front: str, back: str, *, now: int | None = None) -> Card:
    get_deck(store, deck_id)
    card = Card.new(deck_id, front, back, now=now_ms() if now is None else now)
    store.add_card(card)
    logger.info("card_created", card_id=card.id, deck_id=deck_id)
    return card


def get_card(store: Store, card_id: str) -> Card:
    card = store.get_card(card_id)
    if card is None:
        raise NotFoundError("card", card_id)
    return card


def list_cards(store: Store, deck_id: str) -> list[Card]:
    """Cards of a deck, newest first."""
    get_deck(store, deck_id)
    cards = store.get_cards_by_deck(deck_id)
    return sorted(cards, key=lambda card: (-card.created_at, card.id))


def browse_cards(store: Store, deck_id: str, *, now: int | None = None) -> list[CardListItem]:
    """Cards of a deck, newest first, each with its due flag and days until review."""
    cutoff = now_ms() if now is None else now
    return [
        CardListItem(
            **card.model_dump(),
            is_due=card.next_review <= cutoff,
            due_in_days=days_until_review(card.next_review, cutoff),
        )
        for card in list_cards(store, deck_id)
    ]


def update_card_content(
    store: Store,
    card_id: str,
    *,
    front: str | None = None,
    back: str | None = None,
) -> Card:
    card = get_card(store, card_id)
    # 検証のみ（空文字を弾く）。保存は content 専用の更新で行う
    edited = Card.model_validate(
        {**card.model_dump(), "front": card.front if front is None else front, "back": card.back if back is None else back}
    )
    updated = store.update_card_content(card_id, front=edited.front, back=edited.back)
    if updated is None:
        raise NotFoundError("card", card_id)
    return updated


def delete_card(store: Store, card_id: str) -> None:
    """Delete a card. Its review logs stay behind as orphans."""
    if not store.delete_card(card_id):
        raise NotFoundError("card", card_id)
    logger.info("card_deleted", card_id=card_id)


def list_review_logs(store: Store, card_id: str) -> list[ReviewLog]:
    """Review history of a card, oldest first. Works for deleted cards too."""
    return store.list_review_logs(card_id)
