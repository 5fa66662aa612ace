import pytest
from pydantic import ValidationError

from flashcards import decks as deck_ops
from flashcards.errors import NotFoundError
from flashcards.review import review_card
from flashcards.scheduler import MS_PER_DAY


def test_create_deck_strips_and_requires_name(store, now):
    deck = deck_ops.create_deck(store, "  Kanji  ", "  N5 set ", now=now)
    assert deck.name == "Kanji"
    assert deck.description == "N5 set"
    assert deck.created_at == deck.updated_at == now
    assert deck_ops.get_deck(store, deck.id) == deck

    with pytest.raises(ValidationError):
        deck_ops.create_deck(store, "   ", now=now)


def test_list_decks_reports_counts_and_recent_first(store, now):
    old = deck_ops.create_deck(store, "Old", now=now - 10)
    new = deck_ops.create_deck(store, "New", now=now)
    deck_ops.create_card(store, old.id, "q1", "a1", now=now)
    reviewed = deck_ops.create_card(store, old.id, "q2", "a2", now=now)
    review_card(store, reviewed.id, 5, now=now)

    summaries = deck_ops.list_decks(store, now=now)

    assert [s.deck.id for s in summaries] == [new.id, old.id]
    old_summary = summaries[1]
    assert old_summary.card_count == 2
    assert old_summary.due_count == 1
    assert old_summary.mastery_percent == 50
    assert summaries[0].card_count == 0
    assert summaries[0].mastery_percent == 0


def test_update_deck_bumps_updated_at(store, now):
    deck = deck_ops.create_deck(store, "Verbs", "irregular", now=now)

    renamed = deck_ops.update_deck(store, deck.id, name="Irregular verbs", now=now + 5)
    assert renamed.name == "Irregular verbs"
    assert renamed.description == "irregular"
    assert renamed.updated_at == now + 5
    assert renamed.created_at == now

    cleared = deck_ops.update_deck(store, deck.id, description="", now=now + 6)
    assert cleared.description is None
    assert deck_ops.get_deck(store, deck.id).description is None


def test_missing_deck_raises_not_found(store):
    with pytest.raises(NotFoundError):
        deck_ops.get_deck(store, "deck:nope")
    with pytest.raises(NotFoundError):
        deck_ops.update_deck(store, "deck:nope", name="x")
    with pytest.raises(NotFoundError):
        deck_ops.delete_deck(store, "deck:nope")
    with pytest.raises(NotFoundError):
        deck_ops.create_card(store, "deck:nope", "q", "a")
    with pytest.raises(NotFoundError):
        deck_ops.list_cards(store, "deck:nope")


def test_delete_deck_removes_cards_but_keeps_logs(store, now):
    deck = deck_ops.create_deck(store, "Temp", now=now)
    card = deck_ops.create_card(store, deck.id, "q", "a", now=now)
    review_card(store, card.id, 2, now=now)

    deck_ops.delete_deck(store, deck.id)

    assert store.get_deck(deck.id) is None
    assert store.get_card(card.id) is None
    assert store.get_cards_by_deck(deck.id) == []
    assert [log.card_id for log in deck_ops.list_review_logs(store, card.id)] == [card.id]


def test_create_card_requires_both_sides(store, now):
    deck = deck_ops.create_deck(store, "Deck", now=now)
    with pytest.raises(ValidationError):
        deck_ops.create_card(store, deck.id, "question", "  ", now=now)
    with pytest.raises(ValidationError):
        deck_ops.create_card(store, deck.id, "", "answer", now=now)
    assert store.get_cards_by_deck(deck.id) == []


def test_list_cards_newest_first(store, now):
    deck = deck_ops.create_deck(store, "Deck", now=now)
    first = deck_ops.create_card(store, deck.id, "first", "1", now=now)
    second = deck_ops.create_card(store, deck.id, "second", "2", now=now + MS_PER_DAY)

    assert [c.id for c in deck_ops.list_cards(store, deck.id)] == [second.id, first.id]


def test_editing_content_keeps_schedule(store, now):
    deck = deck_ops.create_deck(store, "Deck", now=now)
    card = deck_ops.create_card(store, deck.id, "gato", "cat", now=now)
    reviewed = review_card(store, card.id, 5, now=now).card

    edited = deck_ops.update_card_content(store, card.id, back="cat (noun)")

    assert edited.front == "gato"
    assert edited.back == "cat (noun)"
    for field in ("ease_factor", "interval", "repetitions", "next_review", "last_reviewed_at"):
        assert getattr(edited, field) == getattr(reviewed, field)

    with pytest.raises(ValidationError):
        deck_ops.update_card_content(store, card.id, front=" ")
    assert store.get_card(card.id).front == "gato"


def test_card_operations_on_missing_card(store):
    with pytest.raises(NotFoundError):
        deck_ops.get_card(store, "card:nope")
    with pytest.raises(NotFoundError):
        deck_ops.update_card_content(store, "card:nope", front="x")
    with pytest.raises(NotFoundError):
        deck_ops.delete_card(store, "card:nope")


@pytest.mark.parametrize(
    ("card_count", "due_count", "expected"),
    [(0, 0, 0), (4, 4, 0), (4, 0, 100), (3, 2, 33), (3, 1, 67), (8, 7, 13)],
)
def test_mastery_percent(card_count: int, due_count: int, expected: int):
    assert deck_ops.mastery_percent(card_count, due_count) == expected


def test_deck_summary_for_detail_view(store, now):
    empty = deck_ops.create_deck(store, "Empty", now=now)
    summary = deck_ops.get_deck_summary(store, empty.id, now=now)
    assert (summary.card_count, summary.due_count, summary.mastery_percent) == (0, 0, 0)

    deck = deck_ops.create_deck(store, "Deck", now=now)
    for i in range(4):
        card = deck_ops.create_card(store, deck.id, f"q{i}", f"a{i}", now=now)
        if i < 3:
            review_card(store, card.id, 4, now=now)

    summary = deck_ops.get_deck_summary(store, deck.id, now=now)
    assert summary.deck == deck
    assert (summary.card_count, summary.due_count, summary.mastery_percent) == (4, 1, 75)

    with pytest.raises(NotFoundError):
        deck_ops.get_deck_summary(store, "deck:nope", now=now)


def test_browse_cards_reports_days_until_review(store, now):
    deck = deck_ops.create_deck(store, "Deck", now=now)
    fresh = deck_ops.create_card(store, deck.id, "fresh", "1", now=now)
    learned = deck_ops.create_card(store, deck.id, "learned", "2", now=now + 1)
    for _ in range(2):
        review_card(store, learned.id, 5, now=now)

    items = deck_ops.browse_cards(store, deck.id, now=now + MS_PER_DAY // 2)

    assert [item.id for item in items] == [learned.id, fresh.id]
    assert (items[0].is_due, items[0].due_in_days) == (False, 3)
    assert (items[1].is_due, items[1].due_in_days) == (True, 0)
