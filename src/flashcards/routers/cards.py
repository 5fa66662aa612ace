from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from .. import decks as deck_ops
from ..dependencies import get_store
from ..models import Card, CardUpdateRequest, ReviewLogListResponse, ReviewRequest, ReviewResult
from ..review import review_card
from ..store import Store

router = APIRouter(tags=["cards"])


@router.get("/{card_id}", response_model=Card, summary="カード取得")
def get_card(card_id: str, store: Store = Depends(get_store)) -> Card:
    return deck_ops.get_card(store, card_id)


@router.patch("/{card_id}", response_model=Card, summary="カード内容（表/裏）の編集")
def update_card(card_id: str, req: CardUpdateRequest, store: Store = Depends(get_store)) -> Card:
    return deck_ops.update_card_content(store, card_id, front=req.front, back=req.back)


@router.delete("/{card_id}", status_code=status.HTTP_204_NO_CONTENT, summary="カード削除（履歴は保持）")
def delete_card(card_id: str, store: Store = Depends(get_store)) -> Response:
    deck_ops.delete_card(store, card_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{card_id}/review", response_model=ReviewResult, summary="採点して次回出題時刻を更新")
def review(card_id: str, req: ReviewRequest, store: Store = Depends(get_store)) -> ReviewResult:
    """Grade a card with quality 0..5 using SM-2 and return the card and its log entry."""
    return review_card(store, card_id, req.quality)


@router.get("/{card_id}/logs", response_model=ReviewLogListResponse, summary="採点履歴（古い順）")
def review_logs(card_id: str, store: Store = Depends(get_store)) -> ReviewLogListResponse:
    return ReviewLogListResponse(items=deck_ops.list_review_logs(store, card_id))
