import threading

import pytest

from flashcards.errors import NotFoundError
from flashcards.models import Card, Deck, ReviewLog
from flashcards.review import review_card
from flashcards.store import InMemoryStore


def _seed(store: InMemoryStore, now: int, count: int = 1) -> list[Card]:
    deck = Deck.new("Deck", now=now)
    store.add_deck(deck)
    cards = [Card.new(deck.id, f"q{i}", f"a{i}", now=now) for i in range(count)]
    for card in cards:
        store.add_card(card)
    return cards


def test_returned_cards_are_copies(memory_store, now):
    (card,) = _seed(memory_store, now)

    fetched = memory_store.get_card(card.id)
    fetched.front = "mutated"

    assert memory_store.get_card(card.id).front == "q0"


def test_duplicate_ids_are_rejected(memory_store, now):
    (card,) = _seed(memory_store, now)
    with pytest.raises(KeyError):
        memory_store.add_card(card)


def test_staged_writes_are_discarded_on_error(memory_store, now):
    (card,) = _seed(memory_store, now)
    changed = card.model_copy(update={"interval": 5})

    with pytest.raises(ValueError):
        with memory_store.review_transaction(card.id) as tx:
            tx.put_card(changed)
            tx.append_review_log(ReviewLog.new(changed, quality=4, timestamp=now))
            # トランザクション内では書き込みが見える
            assert tx.get_card(card.id).interval == 5
            raise ValueError("abort")

    assert memory_store.get_card(card.id) == card
    assert memory_store.list_review_logs(card.id) == []


def test_concurrent_reviews_of_same_card_do_not_lose_updates(memory_store, now):
    (card,) = _seed(memory_store, now)
    barrier = threading.Barrier(6)

    def _worker() -> None:
        barrier.wait()
        for _ in range(2):
            review_card(memory_store, card.id, 4, now=now)

    threads = [threading.Thread(target=_worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert memory_store.get_card(card.id).repetitions == 12
    logs = memory_store.list_review_logs(card.id)
    assert len(logs) == 12
    assert len({log.id for log in logs}) == 12


def test_reviews_of_different_cards_run_independently(memory_store, now):
    cards = _seed(memory_store, now, count=4)
    hold = threading.Event()
    entered = threading.Event()

    def _slow_review() -> None:
        with memory_store.review_transaction(cards[0].id):
            entered.set()
            hold.wait(timeout=5)

    slow = threading.Thread(target=_slow_review)
    slow.start()
    assert entered.wait(timeout=5)

    # 別カードの採点は cards[0] のロックを待たずに完了する
    for card in cards[1:]:
        assert review_card(memory_store, card.id, 5, now=now).card.repetitions == 1

    hold.set()
    slow.join()


def test_delete_deck_removes_its_cards(memory_store, now):
    cards = _seed(memory_store, now, count=2)
    deck_id = cards[0].deck_id

    assert memory_store.delete_deck(deck_id) is True
    assert memory_store.delete_deck(deck_id) is False
    assert memory_store.get_cards_by_deck(deck_id) == []


def test_card_locks_follow_card_lifetime(memory_store, now):
    cards = _seed(memory_store, now, count=2)
    assert set(memory_store._card_locks) == {card.id for card in cards}

    for i in range(200):
        with pytest.raises(NotFoundError):
            review_card(memory_store, f"card:missing-{i}", 4, now=now)
        assert memory_store.update_card_content(f"card:missing-{i}", front="q", back="a") is None
        assert memory_store.delete_card(f"card:missing-{i}") is False

    assert set(memory_store._card_locks) == {card.id for card in cards}

    memory_store.delete_card(cards[0].id)
    assert set(memory_store._card_locks) == {cards[1].id}
