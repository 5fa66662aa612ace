import sqlite3
import threading

import pytest

from flashcards.models import Card, Deck, ReviewLog
from flashcards.review import review_card
from flashcards.store import SQLiteStore


def _seed(store: SQLiteStore, now: int) -> Card:
    deck = Deck.new("Deck", now=now)
    store.add_deck(deck)
    card = Card.new(deck.id, "front", "back", now=now)
    store.add_card(card)
    return card


def test_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "cards.sqlite3"
    SQLiteStore(str(db_path))
    assert db_path.exists()


def test_data_persists_across_instances(tmp_path, now):
    db_path = str(tmp_path / "cards.sqlite3")
    card = _seed(SQLiteStore(db_path), now)
    review_card(SQLiteStore(db_path), card.id, 4, now=now)

    reopened = SQLiteStore(db_path)
    stored = reopened.get_card(card.id)
    assert stored is not None
    assert stored.repetitions == 1
    assert stored.last_reviewed_at == now
    assert len(reopened.list_review_logs(card.id)) == 1


def test_null_last_reviewed_round_trips(sqlite_store, now):
    card = _seed(sqlite_store, now)
    assert sqlite_store.get_card(card.id).last_reviewed_at is None


def test_add_card_requires_existing_deck(sqlite_store, now):
    orphan = Card.new("deck:missing", "q", "a", now=now)
    with pytest.raises(sqlite3.IntegrityError):
        sqlite_store.add_card(orphan)


def test_duplicate_log_id_is_rejected(sqlite_store, now):
    card = _seed(sqlite_store, now)
    log = ReviewLog.new(card, quality=4, timestamp=now)
    sqlite_store.append_review_log(log)
    with pytest.raises(sqlite3.IntegrityError):
        sqlite_store.append_review_log(log)
    assert sqlite_store.list_review_logs(card.id) == [log]


def test_review_transaction_rolls_back_on_error(sqlite_store, now):
    card = _seed(sqlite_store, now)
    changed = card.model_copy(update={"interval": 9, "repetitions": 4})

    with pytest.raises(RuntimeError):
        with sqlite_store.review_transaction(card.id) as tx:
            tx.put_card(changed)
            tx.append_review_log(ReviewLog.new(changed, quality=5, timestamp=now))
            assert tx.get_card(card.id).interval == 9
            raise RuntimeError("boom")

    assert sqlite_store.get_card(card.id) == card
    assert sqlite_store.list_review_logs(card.id) == []


def test_concurrent_reviews_of_same_card_are_serialised(sqlite_store, now):
    card = _seed(sqlite_store, now)
    errors: list[BaseException] = []

    def _worker() -> None:
        try:
            for _ in range(4):
                review_card(sqlite_store, card.id, 5, now=now)
        except BaseException as exc:  # pragma: no cover - 失敗時のみ
            errors.append(exc)

    threads = [threading.Thread(target=_worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    stored = sqlite_store.get_card(card.id)
    assert stored.repetitions == 12
    assert len(sqlite_store.list_review_logs(card.id)) == 12
