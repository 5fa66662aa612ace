from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..id_factory import generate_card_id
from ..scheduler import INITIAL_EASE_FACTOR, MIN_EASE_FACTOR


class Card(BaseModel):
    """A flashcard with its SM-2 scheduling state.

    スケジューリング項目（ease_factor / interval / repetitions / next_review /
    last_reviewed_at）は作成時に初期化され、以降は採点処理だけが更新する。
    時刻はすべてエポックミリ秒。
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    deck_id: str
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)
    created_at: int
    ease_factor: float = Field(default=INITIAL_EASE_FACTOR, ge=MIN_EASE_FACTOR)
    interval: int = Field(default=0, ge=0)
    repetitions: int = Field(default=0, ge=0)
    next_review: int
    last_reviewed_at: int | None = None

    @classmethod
    def new(cls, deck_id: str, front: str, back: str, *, now: int) -> "Card":
        """Create a card that is due immediately."""
        return cls(
            id=generate_card_id(),
            deck_id=deck_id,
            front=front,
            back=back,
            created_at=now,
            next_review=now,
        )


class CardCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    front: str = Field(min_length=1, max_length=10_000)
    back: str = Field(min_length=1, max_length=10_000)


class CardUpdateRequest(BaseModel):
    """Content-only edit; scheduling fields are not accepted here."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    front: str | None = Field(default=None, min_length=1, max_length=10_000)
    back: str | None = Field(default=None, min_length=1, max_length=10_000)


class CardListItem(Card):
    """Card as shown in the card browser, with its due hint.

    `due_in_days` は次回出題までの日数（切り上げ）。due 済みなら 0。
    """

    is_due: bool
    due_in_days: int = Field(ge=0)


class CardListResponse(BaseModel):
    items: list[CardListItem]
