import logging

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_201_CREATED

from app.core.deps import get_candidate_service
from app.core.security import get_current_auth_id
from app.schemas.candidates import (
    GenerateCandidateIn, CandidateOut, CandidateListOut, AcceptCandidateIn,
)
from app.schemas.flashcards import FlashcardCreatedOut, MessageOut
from app.services.ai_generator import AIGenerationError, AIServiceNotConfigured
from app.services.candidates import (
    CandidateReviewService,
    CandidateExpiredError,
    CandidateNotFoundError,
)
from app.services.flashcards_service import FlashcardStoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai/candidates", tags=["ai"])


def _lookup_errors(exc: Exception):
    if isinstance(exc, CandidateNotFoundError):
        return HTTPException(404, detail="Candidate not found")
    if isinstance(exc, CandidateExpiredError):
        return HTTPException(410, detail="Candidate expired")
    return None


@router.post("", response_model=CandidateOut, status_code=HTTP_201_CREATED)
def generate_candidate(
    payload: GenerateCandidateIn,
    auth_id: str = Depends(get_current_auth_id),
    service: CandidateReviewService = Depends(get_candidate_service),
):
    try:
        return service.propose(auth_id, payload.source_text)
    except ValueError as e:
        raise HTTPException(400, detail=str(e))
    except AIServiceNotConfigured as e:
        raise HTTPException(503, detail=str(e))
    except AIGenerationError as e:
        raise HTTPException(502, detail=str(e))


@router.get("", response_model=CandidateListOut)
def list_candidates(
    auth_id: str = Depends(get_current_auth_id),
    service: CandidateReviewService = Depends(get_candidate_service),
):
    return CandidateListOut(items=[CandidateOut.model_validate(c) for c in service.list_pending(auth_id)])


@router.get("/{candidate_id}", response_model=CandidateOut)
def get_candidate(
    candidate_id: str,
    auth_id: str = Depends(get_current_auth_id),
    service: CandidateReviewService = Depends(get_candidate_service),
):
    try:
        return service.get(auth_id, candidate_id)
    except (CandidateNotFoundError, CandidateExpiredError) as e:
        raise _lookup_errors(e)


@router.post("/{candidate_id}/accept", response_model=FlashcardCreatedOut, status_code=HTTP_201_CREATED)
def accept_candidate(
    candidate_id: str,
    payload: AcceptCandidateIn | None = None,
    auth_id: str = Depends(get_current_auth_id),
    service: CandidateReviewService = Depends(get_candidate_service),
):
    payload = payload or AcceptCandidateIn()
    try:
        new_id = service.accept(auth_id, candidate_id, front=payload.front, back=payload.back)
    except (CandidateNotFoundError, CandidateExpiredError) as e:
        raise _lookup_errors(e)
    except FlashcardStoreError as e:
        logger.exception("Flashcard store error: %s", e)
        raise HTTPException(500, detail="Internal server error")
    return FlashcardCreatedOut(flashcard_id=new_id)


@router.delete("/{candidate_id}", response_model=MessageOut)
def discard_candidate(
    candidate_id: str,
    auth_id: str = Depends(get_current_auth_id),
    service: CandidateReviewService = Depends(get_candidate_service),
):
    try:
        service.discard(auth_id, candidate_id)
    except (CandidateNotFoundError, CandidateExpiredError) as e:
        raise _lookup_errors(e)
    return MessageOut(message="Candidate discarded")
