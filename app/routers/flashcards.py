import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from starlette.status import HTTP_201_CREATED

from app.core.deps import get_flashcards_service
from app.core.security import get_current_auth_id
from app.schemas.flashcards import (
    FlashcardCreateIn, FlashcardUpdateIn,
    FlashcardsPageOut, FlashcardOut, FlashcardCreatedOut, MessageOut,
    FlashcardStatus, SortField, SortOrder,
)
from app.services.flashcards_service import (
    FlashcardQueryService,
    FlashcardNotFoundError,
    FlashcardStoreError,
    InvalidQueryError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flashcards", tags=["flashcards"])


# =========================================================
# Helpers
# =========================================================
def _call(fn, *args, **kwargs):
    """
    Exécute une opération du service et traduit ses erreurs en HTTPException.
    """
    try:
        return fn(*args, **kwargs)
    except InvalidQueryError as e:
        raise HTTPException(400, detail=str(e))
    except FlashcardNotFoundError:
        raise HTTPException(404, detail="Flashcard not found")
    except FlashcardStoreError as e:
        logger.exception("Flashcard store error: %s", e)
        raise HTTPException(500, detail="Internal server error")


# =========================================================
# Collection
# =========================================================
@router.get("", response_model=FlashcardsPageOut)
def list_flashcards(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort: SortField = Query(default="created_at"),
    order: SortOrder = Query(default="desc"),
    status: Optional[FlashcardStatus] = Query(default=None),
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    return _call(
        service.list,
        auth_id,
        page=page,
        limit=limit,
        sort_field=sort,
        sort_order=order,
        status=status,
    )


@router.post("", response_model=FlashcardCreatedOut, status_code=HTTP_201_CREATED)
def create_flashcard(
    payload: FlashcardCreateIn,
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    new_id = _call(
        service.create,
        auth_id,
        front=payload.front,
        back=payload.back,
        source=payload.source,
        status=payload.status,
    )
    return FlashcardCreatedOut(flashcard_id=new_id)


# =========================================================
# Item
# =========================================================
@router.get("/{flashcard_id}", response_model=FlashcardOut)
def get_flashcard(
    flashcard_id: int = Path(ge=1),
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    card = _call(service.get_by_id, auth_id, flashcard_id)
    if card is None:
        raise HTTPException(404, detail="Flashcard not found")
    return card


@router.put("/{flashcard_id}", response_model=MessageOut)
def update_flashcard(
    payload: FlashcardUpdateIn,
    flashcard_id: int = Path(ge=1),
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    if payload.front is None and payload.back is None:
        raise HTTPException(400, detail="At least one field (front or back) must be provided for update")

    _call(service.update, auth_id, flashcard_id, front=payload.front, back=payload.back)
    return MessageOut(message="Flashcard updated successfully")


@router.delete("/{flashcard_id}", response_model=MessageOut)
def delete_flashcard(
    flashcard_id: int = Path(ge=1),
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    _call(service.delete, auth_id, flashcard_id)
    return MessageOut(message="Flashcard deleted successfully")


# =========================================================
# Review (proposal -> approved | supprimée)
# =========================================================
@router.post("/{flashcard_id}/approve", response_model=MessageOut)
def approve_flashcard(
    flashcard_id: int = Path(ge=1),
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    _call(service.approve, auth_id, flashcard_id)
    return MessageOut(message="Flashcard approved successfully")


@router.post("/{flashcard_id}/reject", response_model=MessageOut)
def reject_flashcard(
    flashcard_id: int = Path(ge=1),
    auth_id: str = Depends(get_current_auth_id),
    service: FlashcardQueryService = Depends(get_flashcards_service),
):
    _call(service.reject, auth_id, flashcard_id)
    return MessageOut(message="Flashcard rejected and deleted")
