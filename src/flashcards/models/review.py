from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..id_factory import generate_review_log_id
from .card import Card


class ReviewLog(BaseModel):
    """One review event. Append-only: never updated or deleted once written.

    カードやデッキが削除されても履歴は残る（孤立レコードを許容）。
    """

    model_config = ConfigDict(frozen=True)

    id: str
    card_id: str
    deck_id: str
    quality: int
    timestamp: int
    new_ease_factor: float
    new_interval: int

    @classmethod
    def new(
        cls,
        card: Card,
        *,
        quality: int,
        timestamp: int,
    ) -> "ReviewLog":
        """Build the log entry for a card that has just been rescheduled."""
        return cls(
            id=generate_review_log_id(),
            card_id=card.id,
            deck_id=card.deck_id,
            quality=quality,
            timestamp=timestamp,
            new_ease_factor=card.ease_factor,
            new_interval=card.interval,
        )


class ReviewResult(BaseModel):
    card: Card
    log: ReviewLog


class ReviewRequest(BaseModel):
    """採点リクエスト。quality は 0..5 の整数（5 が完全想起）。

    strict なので true や "5" のような型変換は行わない。
    """

    quality: int = Field(ge=0, le=5, strict=True)


class DueCardsResponse(BaseModel):
    now: int
    items: list[Card]


class ReviewLogListResponse(BaseModel):
    items: list[ReviewLog]
