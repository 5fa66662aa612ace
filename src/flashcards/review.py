"""Review operation and due-set query.

スケジューラ（純粋関数）とストアをつなぐ層。ストアは引数で明示的に受け取る。
"""

from __future__ import annotations

from .errors import InvalidQualityError, NotFoundError
from .logging import logger
from .metrics import registry
from .models import Card, ReviewLog, ReviewResult
from .scheduler import MAX_QUALITY, MIN_QUALITY, compute_next_state, next_review_at, now_ms
from .store import Store


def _validate_quality(quality: object) -> int:
    # bool は int のサブクラスだが採点値としては受け付けない
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        raise InvalidQualityError(quality)
    return int(quality)


def review_card(store: Store, card_id: str, quality: int, *, now: int | None = None) -> ReviewResult:
    """Apply one review to a card and record it.

    Reads the card, computes the next SM-2 state, writes the card and appends
    a ReviewLog inside one `review_transaction`, so both writes land together
    or not at all. Raises NotFoundError (no mutation) for an unknown card and
    InvalidQualityError before touching the store for a bad rating.

    Calling this twice for the same logical review applies the schedule
    twice; callers must guard against double submission.
    """
    quality = _validate_quality(quality)
    reviewed_at = now_ms() if now is None else now

    with store.review_transaction(card_id) as tx:
        card = tx.get_card(card_id)
        if card is None:
            raise NotFoundError("card", card_id)

        state = compute_next_state(card.ease_factor, quality, card.interval, card.repetitions)
        updated = card.model_copy(
            update={
                "ease_factor": state.new_ease_factor,
                "interval": state.new_interval,
                "repetitions": state.new_repetitions,
                "next_review": next_review_at(reviewed_at, state.new_interval),
                "last_reviewed_at": reviewed_at,
            }
        )
        log = ReviewLog.new(updated, quality=quality, timestamp=reviewed_at)
        tx.put_card(updated)
        tx.append_review_log(log)

    registry.record_review(quality)
    logger.info(
        "card_reviewed",
        card_id=updated.id,
        deck_id=updated.deck_id,
        quality=quality,
        ease_factor=updated.ease_factor,
        interval=updated.interval,
        repetitions=updated.repetitions,
        next_review=updated.next_review,
    )
    return ReviewResult(card=updated, log=log)


def get_cards_due_for_review(store: Store, deck_id: str, now: int | None = None) -> list[Card]:
    """Cards of a deck with next_review <= now, earliest due first.

    Ties on next_review are broken by card id so the order is total.
    """
    cutoff = now_ms() if now is None else now
    due = [card for card in store.get_cards_by_deck(deck_id) if card.next_review <= cutoff]
    return sorted(due, key=lambda card: (card.next_review, card.id))
