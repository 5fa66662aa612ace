from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..id_factory import generate_deck_id


class Deck(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(min_length=1)
    description: str | None = None
    created_at: int
    updated_at: int

    @classmethod
    def new(cls, name: str, description: str | None = None, *, now: int) -> "Deck":
        return cls(
            id=generate_deck_id(),
            name=name,
            description=description or None,
            created_at=now,
            updated_at=now,
        )


class DeckCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class DeckUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)


class DeckSummary(BaseModel):
    """Deck with its card count, due count and mastery.

    デッキ一覧とデッキ詳細の両方で使う。mastery_percent は due でないカードの
    割合（0..100、四捨五入）で、カードが無いデッキでは 0。
    """

    deck: Deck
    card_count: int = Field(ge=0, description="Cards in the deck / デッキ内のカード数")
    due_count: int = Field(ge=0, description="Cards due now / 現在 due のカード数")
    mastery_percent: int = Field(ge=0, le=100, description="Share of cards not due / 習得率(%)")


class DeckListResponse(BaseModel):
    items: list[DeckSummary]
