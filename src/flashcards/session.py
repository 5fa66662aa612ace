from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import AnswerNotRevealedError, SessionFinishedError
from .logging import logger
from .models import Card, ReviewResult
from .review import get_cards_due_for_review, review_card
from .scheduler import is_lapse, now_ms
from .store import Store


class SessionState(str, Enum):
    studying = "studying"
    finished = "finished"


@dataclass
class StudyStats:
    correct: int = 0
    incorrect: int = 0
    skipped: int = 0


class StudySession:
    """Walk through the cards of a deck that are due, one at a time.

    学習画面の進行役。開始時点の due カードを一度だけ取得し、表示 → 解答表示 →
    採点（または skip）を繰り返す。解答表示前の採点は受け付けないことで、
    同じカードへの二重採点を防ぐ。
    """

    def __init__(self, store: Store, deck_id: str, *, now: int | None = None) -> None:
        self._store = store
        self.deck_id = deck_id
        self.cards: list[Card] = get_cards_due_for_review(store, deck_id, now_ms() if now is None else now)
        self.index = 0
        self.revealed = False
        self.stats = StudyStats()
        logger.info("session_started", deck_id=deck_id, due_count=len(self.cards))
        if not self.cards:
            self._finish()

    @property
    def state(self) -> SessionState:
        return SessionState.studying if self.index < len(self.cards) else SessionState.finished

    @property
    def current(self) -> Card | None:
        if self.state is SessionState.finished:
            return None
        return self.cards[self.index]

    @property
    def progress(self) -> tuple[int, int]:
        """(position of the current card counting from 1, total)."""
        total = len(self.cards)
        return min(self.index + 1, total), total

    def reveal(self) -> Card | None:
        """Flip the current card to its answer side."""
        card = self.current
        if card is not None:
            self.revealed = True
        return card

    def rate(self, quality: int, *, now: int | None = None) -> ReviewResult:
        card = self.current
        if card is None:
            raise SessionFinishedError(f"no cards left in session for {self.deck_id}")
        if not self.revealed:
            raise AnswerNotRevealedError("reveal the answer before rating")
        # 失敗時は revealed のまま残し、同じカードへ再送できるようにする
        result = review_card(self._store, card.id, quality, now=now)
        if is_lapse(quality):
            self.stats.incorrect += 1
        else:
            self.stats.correct += 1
        self._advance()
        return result

    def skip(self) -> None:
        """Move on without rating; the card's schedule is left untouched."""
        if self.current is None:
            return
        self.stats.skipped += 1
        self._advance()

    def _advance(self) -> None:
        self.index += 1
        self.revealed = False
        if self.state is SessionState.finished:
            self._finish()

    def _finish(self) -> None:
        logger.info(
            "session_finished",
            deck_id=self.deck_id,
            correct=self.stats.correct,
            incorrect=self.stats.incorrect,
            skipped=self.stats.skipped,
        )
