from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status

from .. import decks as deck_ops
from ..dependencies import get_store
from ..models import (
    Card,
    CardCreateRequest,
    CardListResponse,
    Deck,
    DeckCreateRequest,
    DeckListResponse,
    DeckSummary,
    DeckUpdateRequest,
    DueCardsResponse,
)
from ..review import get_cards_due_for_review
from ..scheduler import now_ms
from ..store import Store

router = APIRouter(tags=["decks"])


@router.get("", response_model=DeckListResponse, summary="デッキ一覧（カード数・due 件数・習得率付き）")
def list_decks(store: Store = Depends(get_store)) -> DeckListResponse:
    return DeckListResponse(items=deck_ops.list_decks(store))


@router.post("", response_model=Deck, status_code=status.HTTP_201_CREATED, summary="デッキ作成")
def create_deck(req: DeckCreateRequest, store: Store = Depends(get_store)) -> Deck:
    return deck_ops.create_deck(store, req.name, req.description)


@router.get("/{deck_id}", response_model=DeckSummary, summary="デッキ詳細（カード数・due 件数・習得率）")
def get_deck(
    deck_id: str,
    now: int | None = Query(default=None, ge=0, description="Epoch ms; defaults to server time"),
    store: Store = Depends(get_store),
) -> DeckSummary:
    return deck_ops.get_deck_summary(store, deck_id, now=now)


@router.patch("/{deck_id}", response_model=Deck, summary="デッキ名・説明の編集")
def update_deck(deck_id: str, req: DeckUpdateRequest, store: Store = Depends(get_store)) -> Deck:
    return deck_ops.update_deck(store, deck_id, name=req.name, description=req.description)


@router.delete("/{deck_id}", status_code=status.HTTP_204_NO_CONTENT, summary="デッキ削除（カードも削除、履歴は保持）")
def delete_deck(deck_id: str, store: Store = Depends(get_store)) -> Response:
    deck_ops.delete_deck(store, deck_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{deck_id}/cards", response_model=CardListResponse, summary="カード一覧（新しい順、次回出題までの日数付き）")
def list_cards(
    deck_id: str,
    now: int | None = Query(default=None, ge=0, description="Epoch ms; defaults to server time"),
    store: Store = Depends(get_store),
) -> CardListResponse:
    return CardListResponse(items=deck_ops.browse_cards(store, deck_id, now=now))


@router.post(
    "/{deck_id}/cards",
    response_model=Card,
    status_code=status.HTTP_201_CREATED,
    summary="カード作成（即時 due）",
)
def create_card(deck_id: str, req: CardCreateRequest, store: Store = Depends(get_store)) -> Card:
    return deck_ops.create_card(store, deck_id, req.front, req.back)


@router.get("/{deck_id}/due", response_model=DueCardsResponse, summary="復習対象カード（due の早い順）")
def due_cards(
    deck_id: str,
    now: int | None = Query(default=None, ge=0, description="Epoch ms; defaults to server time"),
    store: Store = Depends(get_store),
) -> DueCardsResponse:
    """Return cards with next_review <= now, earliest first."""
    deck_ops.get_deck(store, deck_id)
    cutoff = now_ms() if now is None else now
    return DueCardsResponse(now=cutoff, items=get_cards_due_for_review(store, deck_id, cutoff))
