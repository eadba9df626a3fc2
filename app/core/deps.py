from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.database import get_db
from app.services.ai_generator import CandidateGenerator
from app.services.candidates import CandidateReviewService
from app.services.flashcards_service import FlashcardQueryService
from app.services.user_identity import UserIdentityResolver


def get_settings_dep():
    return get_settings()


def get_identity_resolver(db: Session = Depends(get_db)) -> UserIdentityResolver:
    settings = get_settings()
    return UserIdentityResolver(db, allow_fallback=settings.IDENTITY_FALLBACK_ENABLED)


def get_flashcards_service(
    db: Session = Depends(get_db),
    resolver: UserIdentityResolver = Depends(get_identity_resolver),
) -> FlashcardQueryService:
    return FlashcardQueryService(db, resolver)


def get_candidate_generator() -> CandidateGenerator:
    """
    Fournit le générateur IA en dépendance (DI) ; surchargé dans les tests.
    """
    settings = get_settings()
    return CandidateGenerator(
        api_key=settings.AI_API_KEY,
        base_url=settings.AI_BASE_URL,
        model=settings.AI_MODEL,
        timeout=settings.AI_TIMEOUT_SECONDS,
    )


def get_candidate_service(
    db: Session = Depends(get_db),
    resolver: UserIdentityResolver = Depends(get_identity_resolver),
    flashcards: FlashcardQueryService = Depends(get_flashcards_service),
    generator: CandidateGenerator = Depends(get_candidate_generator),
) -> CandidateReviewService:
    settings = get_settings()
    return CandidateReviewService(
        db,
        resolver,
        flashcards,
        generator,
        ttl_minutes=settings.CANDIDATE_TTL_MINUTES,
    )
